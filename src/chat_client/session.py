"""Composition root: one explicit object graph per client session."""
from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

from chat_client.application.ports.api import RemoteApi
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.storage import SnapshotStorage
from chat_client.config import Settings
from chat_client.domain.value_objects.enums import ThreadKind
from chat_client.infrastructure.api.http_client import HttpRemoteApi
from chat_client.infrastructure.storage.sqlalchemy_storage import SqlAlchemySnapshotStorage
from chat_client.services.identity_resolver import IdentityResolver
from chat_client.services.message_dispatcher import MessageDispatcher
from chat_client.services.notices import NoticeBoard
from chat_client.services.selection_tracker import SelectionTracker
from chat_client.services.sync_engine import SyncEngine
from chat_client.services.thread_store import ThreadStore

logger = logging.getLogger(__name__)


class ChatSession:
    def __init__(
        self,
        api: RemoteApi,
        storage: SnapshotStorage | None,
        settings: Settings,
        *,
        clock: Clock | None = None,
    ) -> None:
        clock = clock or SystemClock()
        self.api = api
        self.storage = storage
        self.settings = settings
        self.store = ThreadStore(storage)
        self.notices = NoticeBoard(dismiss_after=settings.SEND_ERROR_DISMISS_SECONDS)
        self.identity = IdentityResolver(self.store, api)
        self.sync = SyncEngine(
            self.store,
            api,
            history_limit=settings.HISTORY_LIMIT,
            match_window_ms=settings.PENDING_MATCH_WINDOW_MS,
            clock=clock,
        )
        self.dispatcher = MessageDispatcher(
            self.store,
            api,
            self.sync,
            self.notices,
            max_length=settings.MAX_MESSAGE_LENGTH,
            refresh_after_send=settings.REFRESH_AFTER_SEND_SECONDS,
            clock=clock,
        )
        self.selection = SelectionTracker(
            self.store,
            self.sync,
            history_ttl=settings.HISTORY_CACHE_TTL_SECONDS,
            clock=clock,
        )

    async def boot(self, *, reopen: tuple[str, ThreadKind] | None = None) -> None:
        """Load the cache, resolve identity, then pull fresh collections."""
        await self.store.load()
        await self.identity.resolve()
        for kind in (ThreadKind.DIRECT, ThreadKind.GROUP):
            await self.sync.refresh_collection(kind)

        if reopen is not None:
            thread_id, kind = reopen
            if self.store.kind_of(thread_id) == kind:
                await self.selection.open(thread_id, kind)
            else:
                logger.info("Previously open %s thread %s is gone", kind, thread_id)

    async def close(self, *, purge: bool | None = None) -> None:
        """Stop background work; optionally purge ephemeral cache data."""
        await self.dispatcher.aclose()
        self.notices.clear()
        if self.settings.PURGE_CACHE_ON_UNLOAD if purge is None else purge:
            self.store.clear_ephemeral()
            await self.store.save()
            logger.info("Purged cached threads and messages")

        aclose = getattr(self.api, "aclose", None)
        if aclose is not None:
            await aclose()
        aclose = getattr(self.storage, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> Self:
        await self.boot()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


def create_session(settings: Settings) -> ChatSession:
    return ChatSession(
        HttpRemoteApi.from_settings(settings),
        SqlAlchemySnapshotStorage.from_url(settings.CACHE_DATABASE_URL),
        settings,
    )
