"""Pull authoritative snapshots from the backend and merge them into the store.

Reads fail soft: on any ``NetworkError`` the store is left untouched and the
caller keeps showing the last good cache. Every refresh takes a generation
token; a response whose token is no longer the newest is discarded so a slow
request can never overwrite data a newer one already installed.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace

from chat_client.application.exceptions import NetworkError
from chat_client.application.mappers import (
    direct_record_to_thread,
    group_record_to_thread,
    record_to_message,
)
from chat_client.application.ports.api import RemoteApi
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.thread import Thread
from chat_client.domain.value_objects.enums import DeliveryState, Direction, ThreadKind
from chat_client.services.thread_store import ThreadStore

logger = logging.getLogger(__name__)


class SyncEngine:
    def __init__(
        self,
        store: ThreadStore,
        api: RemoteApi,
        *,
        history_limit: int = 50,
        match_window_ms: int = 10_000,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._api = api
        self._history_limit = history_limit
        self._match_window_ms = match_window_ms
        self._clock = clock or SystemClock()
        self._collection_gen: dict[ThreadKind, int] = defaultdict(int)
        self._history_gen: dict[str, int] = defaultdict(int)
        self._synced_at: dict[str, float] = {}

    # -- collections ---------------------------------------------------------

    async def refresh_collection(self, kind: ThreadKind) -> bool:
        self._collection_gen[kind] += 1
        token = self._collection_gen[kind]

        try:
            threads = await self._fetch_collection(kind)
        except NetworkError as exc:
            logger.warning("Refreshing %s threads failed, keeping cache: %s", kind, exc.detail)
            return False

        if token != self._collection_gen[kind]:
            logger.debug("Discarding stale %s refresh (gen %d < %d)", kind, token, self._collection_gen[kind])
            return False

        self._store.replace_collection(kind, threads)
        await self._store.save()
        logger.debug("Refreshed %s threads: %d", kind, len(threads))
        return True

    async def _fetch_collection(self, kind: ThreadKind) -> list[Thread]:
        if kind == ThreadKind.DIRECT:
            return [direct_record_to_thread(r) for r in await self._api.list_direct_threads()]
        return [group_record_to_thread(r) for r in await self._api.list_group_threads()]

    # -- history -------------------------------------------------------------

    def last_synced(self, thread_id: str) -> float | None:
        return self._synced_at.get(thread_id)

    def is_fresh(self, thread_id: str, ttl: float) -> bool:
        synced = self._synced_at.get(thread_id)
        return synced is not None and self._clock.monotonic() - synced < ttl

    async def refresh_messages(self, thread_id: str) -> bool:
        self._history_gen[thread_id] += 1
        token = self._history_gen[thread_id]
        local_at_start = self._store.messages(thread_id)
        known_at_start = {m.client_id or m.id for m in local_at_start}
        pending_at_start = {m.client_id or m.id for m in local_at_start if m.is_pending}

        try:
            records = await self._api.fetch_messages(thread_id, limit=self._history_limit)
        except NetworkError as exc:
            logger.warning("Loading history of %s failed, keeping cache: %s", thread_id, exc.detail)
            return False

        if token != self._history_gen[thread_id]:
            logger.debug("Discarding stale history for %s", thread_id)
            return False

        identity = self._store.identity
        fetched = sorted(
            (record_to_message(thread_id, r, identity) for r in records),
            key=lambda m: m.sent_at,
        )
        merged = self._merge(
            fetched,
            self._store.messages(thread_id),
            known_at_start=known_at_start,
            pending_at_start=pending_at_start,
        )
        self._store.replace_messages(thread_id, merged)
        self._synced_at[thread_id] = self._clock.monotonic()
        await self._store.save()
        return True

    def _merge(
        self,
        fetched: list[Message],
        local: list[Message],
        *,
        known_at_start: set[str],
        pending_at_start: set[str],
    ) -> list[Message]:
        """Fetched history first, then the local entries it must not erase."""
        fetched_index = {m.id: idx for idx, m in enumerate(fetched)}
        # server copies already held locally belong to those entries, never to a pending send
        matched = {fetched_index[m.id] for m in local if m.id in fetched_index}
        preserved: list[Message] = []

        for message in local:
            if message.id in fetched_index:
                idx = fetched_index[message.id]
                if message.client_id and fetched[idx].client_id is None:
                    fetched[idx] = replace(fetched[idx], client_id=message.client_id)
                continue
            if message.is_pending:
                idx = self._backstop_match(message, fetched, matched)
                if idx is not None:
                    matched.add(idx)
                    fetched[idx] = replace(fetched[idx], client_id=message.client_id or message.id)
                    logger.debug("Pending %s matched server message %s", message.id, fetched[idx].id)
                    continue
                preserved.append(message)
            elif message.delivery_state == DeliveryState.FAILED:
                preserved.append(message)
            elif message.client_id is not None and (
                message.client_id in pending_at_start
                or message.client_id not in known_at_start
            ):
                # confirmed while this request was in flight
                preserved.append(message)

        merged = list(fetched)
        for message in preserved:
            if merged and message.sent_at < merged[-1].sent_at:
                message = replace(message, sent_at=merged[-1].sent_at)
            merged.append(message)
        return merged

    def _backstop_match(
        self,
        pending: Message,
        fetched: list[Message],
        matched: set[int],
    ) -> int | None:
        for idx, candidate in enumerate(fetched):
            if idx in matched or candidate.client_id is not None:
                continue
            if (
                candidate.direction == Direction.SENT
                and candidate.text == pending.text
                and abs(candidate.sent_at - pending.sent_at) <= self._match_window_ms
            ):
                return idx
        return None
