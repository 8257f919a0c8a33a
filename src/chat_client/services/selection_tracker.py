"""Active thread/tab and the unread-count invariant."""
from __future__ import annotations

import logging

from chat_client.application.exceptions import NotFoundError, ValidationError
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.domain.entities.thread import Thread
from chat_client.domain.value_objects.enums import ThreadKind
from chat_client.domain.value_objects.ids import new_local_id
from chat_client.services.sync_engine import SyncEngine
from chat_client.services.thread_store import ThreadStore

logger = logging.getLogger(__name__)


class SelectionTracker:
    def __init__(
        self,
        store: ThreadStore,
        sync: SyncEngine,
        *,
        history_ttl: float = 30.0,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._sync = sync
        self._history_ttl = history_ttl
        self._clock = clock or SystemClock()

    @property
    def active_collection(self) -> ThreadKind:
        return self._store.selection.collection

    @property
    def active_thread(self) -> Thread | None:
        thread_id = self._store.selection.thread_id
        return self._store.find_thread(thread_id) if thread_id else None

    async def open(self, thread_id: str, collection: ThreadKind) -> Thread:
        """Select a thread, clear its unread counter and load its history.

        The unread counter is zeroed before history loading so it is 0 as soon
        as this returns, whether or not the history request succeeds.
        """
        thread = self._store.find_thread(thread_id)
        if thread is None or thread.kind != collection:
            raise NotFoundError(f"Thread {thread_id} not found in {collection}")

        self._store.set_active(thread_id, collection)
        if self._store.mark_read(thread_id):
            await self._store.save()

        if not self._sync.is_fresh(thread_id, self._history_ttl):
            await self._sync.refresh_messages(thread_id)
        return self._store.find_thread(thread_id) or thread

    async def switch_collection(self, kind: ThreadKind) -> bool:
        """Make ``kind`` the visible tab and refresh only that collection."""
        self._store.set_active_collection(kind)
        return await self._sync.refresh_collection(kind)

    def visible_threads(self) -> list[Thread]:
        return self._store.threads(self.active_collection)

    def search(self, query: str) -> list[Thread]:
        needle = query.strip().lower()
        threads = self.visible_threads()
        if not needle:
            return threads
        return [t for t in threads if needle in t.name.lower()]

    async def start_thread(self, kind: ThreadKind, name: str) -> Thread:
        """Create a thread locally (before the server knows it) and open it."""
        name = name.strip()
        if not name:
            raise ValidationError("Thread name cannot be empty")
        thread = Thread(
            id=new_local_id(),
            kind=kind,
            name=name,
            last_activity_at=self._clock.now_ms(),
        )
        self._store.upsert_thread(kind, thread)
        self._store.replace_messages(thread.id, [])
        await self._store.save()
        logger.info("Started local %s thread %s", kind, thread.id)

        self._store.set_active(thread.id, kind)
        return thread
