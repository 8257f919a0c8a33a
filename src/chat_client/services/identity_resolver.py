from __future__ import annotations

import logging

from chat_client.application.exceptions import NetworkError
from chat_client.application.mappers import profile_to_identity
from chat_client.application.ports.api import RemoteApi
from chat_client.domain.entities.identity import SessionIdentity
from chat_client.services.thread_store import ThreadStore

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Resolves the acting user once per session."""

    def __init__(self, store: ThreadStore, api: RemoteApi) -> None:
        self._store = store
        self._api = api
        self._resolved = False

    async def resolve(self) -> SessionIdentity | None:
        if self._resolved:
            return self._store.identity

        try:
            profile = await self._api.fetch_profile()
        except NetworkError as exc:
            cached = self._store.identity
            logger.warning(
                "Could not fetch profile (%s); using %s, sent messages may be misclassified",
                exc.detail,
                "cached identity" if cached else "no identity",
            )
            return cached

        identity = profile_to_identity(profile)
        self._store.set_identity(identity)
        self._resolved = True
        await self._store.save()
        logger.info("Session identity: %s (%s)", identity.username, identity.user_id)
        return identity
