"""In-memory thread/message model with atomic snapshot persistence.

The store is the single source of truth for the UI layer. Mutations are
synchronous so an optimistic append is visible before any network call
returns; persistence is a separate ``save()`` that writes every partition in
one atomic snapshot.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable

from chat_client.application.dto.events import StoreChange
from chat_client.application.dto.snapshot import StoreSnapshot
from chat_client.application.exceptions import ConflictError, NotFoundError, StorageError
from chat_client.application.ports.storage import SnapshotStorage
from chat_client.domain.entities.identity import SessionIdentity
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.selection import Selection
from chat_client.domain.entities.thread import Thread
from chat_client.domain.value_objects.enums import DeliveryState, StoreChangeKind, ThreadKind
from chat_client.infrastructure.storage.serializer import decode_snapshot, encode_snapshot

logger = logging.getLogger(__name__)

StoreObserver = Callable[[StoreChange], None]


class ThreadStore:
    def __init__(self, storage: SnapshotStorage | None = None) -> None:
        self._storage = storage
        self._collections: dict[ThreadKind, list[Thread]] = {
            ThreadKind.DIRECT: [],
            ThreadKind.GROUP: [],
        }
        self._messages: dict[str, list[Message]] = {}
        self._selection = Selection()
        self._identity: SessionIdentity | None = None
        self._observers: list[StoreObserver] = []

    # -- observers -----------------------------------------------------------

    def subscribe(self, observer: StoreObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _emit(
        self,
        kind: StoreChangeKind,
        *,
        thread_id: str | None = None,
        collection: ThreadKind | None = None,
    ) -> None:
        change = StoreChange(kind=kind, thread_id=thread_id, collection=collection)
        for observer in list(self._observers):
            try:
                observer(change)
            except Exception:
                logger.exception("Store observer failed on %s", change)

    # -- reads ---------------------------------------------------------------

    @property
    def identity(self) -> SessionIdentity | None:
        return self._identity

    @property
    def selection(self) -> Selection:
        return self._selection

    def threads(self, kind: ThreadKind) -> list[Thread]:
        return list(self._collections[kind])

    def find_thread(self, thread_id: str) -> Thread | None:
        for threads in self._collections.values():
            for thread in threads:
                if thread.id == thread_id:
                    return thread
        return None

    def kind_of(self, thread_id: str) -> ThreadKind | None:
        thread = self.find_thread(thread_id)
        return thread.kind if thread else None

    def messages(self, thread_id: str) -> list[Message]:
        return list(self._messages.get(thread_id, []))

    def find_message(self, thread_id: str, message_id: str) -> Message | None:
        for message in self._messages.get(thread_id, []):
            if message.matches(message_id):
                return message
        return None

    # -- threads -------------------------------------------------------------

    def upsert_thread(self, kind: ThreadKind, thread: Thread) -> Thread:
        """Insert (newest first) or replace by id. Message lists are untouched."""
        if any(t.id == thread.id for t in self._collections[kind.other]):
            raise ConflictError(f"Thread {thread.id} already belongs to {kind.other}")
        if thread.kind != kind:
            thread = replace(thread, kind=kind)

        threads = self._collections[kind]
        for idx, existing in enumerate(threads):
            if existing.id == thread.id:
                threads[idx] = thread
                break
        else:
            threads.insert(0, thread)
        self._emit(StoreChangeKind.THREADS, thread_id=thread.id, collection=kind)
        return thread

    def replace_collection(self, kind: ThreadKind, threads: list[Thread]) -> None:
        """Swap a whole collection for an authoritative remote one."""
        foreign = {t.id for t in self._collections[kind.other]}
        accepted: list[Thread] = []
        seen: set[str] = set()
        for thread in threads:
            if thread.id in foreign:
                logger.warning(
                    "Dropping %s thread %s: id already used by a %s thread",
                    kind, thread.id, kind.other,
                )
                continue
            if thread.id in seen:
                continue
            seen.add(thread.id)
            accepted.append(thread if thread.kind == kind else replace(thread, kind=kind))

        self._collections[kind] = accepted
        self._emit(StoreChangeKind.THREADS, collection=kind)

        active = self._selection.thread_id
        if (
            active is not None
            and self._selection.collection == kind
            and active not in seen
        ):
            logger.info("Active thread %s vanished from %s, clearing selection", active, kind)
            self._selection = Selection(collection=kind)
            self._emit(StoreChangeKind.SELECTION, collection=kind)

    def _patch_thread(self, thread_id: str, **patch: Any) -> Thread | None:
        for kind, threads in self._collections.items():
            for idx, thread in enumerate(threads):
                if thread.id == thread_id:
                    updated = replace(thread, **patch)
                    threads[idx] = updated
                    self._emit(StoreChangeKind.THREADS, thread_id=thread_id, collection=kind)
                    return updated
        return None

    def touch_thread(self, thread_id: str, preview: str, at: int) -> Thread | None:
        return self._patch_thread(thread_id, last_message_preview=preview, last_activity_at=at)

    def mark_read(self, thread_id: str) -> bool:
        """Zero the unread counter. Returns True if it changed."""
        thread = self.find_thread(thread_id)
        if thread is None or thread.unread_count == 0:
            return False
        self._patch_thread(thread_id, unread_count=0)
        return True

    # -- messages ------------------------------------------------------------

    def append_message(self, thread_id: str, message: Message) -> Message:
        messages = self._messages.setdefault(thread_id, [])
        if messages and message.sent_at < messages[-1].sent_at:
            message = replace(message, sent_at=messages[-1].sent_at)
        messages.append(message)
        self._emit(StoreChangeKind.MESSAGES, thread_id=thread_id)
        return message

    def replace_messages(self, thread_id: str, messages: list[Message]) -> None:
        self._messages[thread_id] = list(messages)
        self._emit(StoreChangeKind.MESSAGES, thread_id=thread_id)

    def replace_message_id(
        self,
        thread_id: str,
        old_id: str,
        new_id: str,
        **patch: Any,
    ) -> Message | None:
        """Remap a pending message to its server id.

        A concurrent refresh may already have replaced the list, so a missing
        ``old_id`` is logged and ignored. A repeat confirmation is a no-op.
        """
        messages = self._messages.get(thread_id, [])
        old_idx = next((i for i, m in enumerate(messages) if m.matches(old_id)), None)
        new_idx = next(
            (
                i for i, m in enumerate(messages)
                if m.id == new_id and m.delivery_state == DeliveryState.CONFIRMED
            ),
            None,
        )

        if new_idx is not None:
            confirmed = messages[new_idx]
            if old_idx is None or old_idx == new_idx:
                logger.debug("Message %s in %s already confirmed", new_id, thread_id)
                return confirmed
            # A refresh already delivered the server copy; fold the local one into it.
            if confirmed.client_id is None:
                confirmed = replace(confirmed, client_id=old_id)
                messages[new_idx] = confirmed
            del messages[old_idx]
            self._emit(StoreChangeKind.MESSAGES, thread_id=thread_id)
            return confirmed

        if old_idx is None:
            logger.warning(
                "Cannot reconcile message %s -> %s in thread %s: not present",
                old_id, new_id, thread_id,
            )
            return None

        message = messages[old_idx]
        updated = replace(message, id=new_id, client_id=message.client_id or old_id, **patch)
        if "sent_at" in patch:
            updated = replace(updated, sent_at=_clamp(messages, old_idx, updated.sent_at))
        messages[old_idx] = updated
        self._emit(StoreChangeKind.MESSAGES, thread_id=thread_id)
        return updated

    def update_message(self, thread_id: str, message_id: str, **patch: Any) -> Message | None:
        messages = self._messages.get(thread_id, [])
        for idx, message in enumerate(messages):
            if message.matches(message_id):
                updated = replace(message, **patch)
                messages[idx] = updated
                self._emit(StoreChangeKind.MESSAGES, thread_id=thread_id)
                return updated
        logger.warning("Message %s not found in thread %s", message_id, thread_id)
        return None

    # -- selection & identity -----------------------------------------------

    def set_active(self, thread_id: str | None, collection: ThreadKind) -> Selection:
        """Select a thread. Callers are responsible for read tracking."""
        if thread_id is not None:
            thread = self.find_thread(thread_id)
            if thread is None or thread.kind != collection:
                raise NotFoundError(f"Thread {thread_id} not found in {collection}")
        self._selection = Selection(thread_id=thread_id, collection=collection)
        self._emit(StoreChangeKind.SELECTION, thread_id=thread_id, collection=collection)
        return self._selection

    def set_active_collection(self, kind: ThreadKind) -> Selection:
        thread_id = self._selection.thread_id
        if self._selection.collection != kind:
            thread_id = None
        return self.set_active(thread_id, kind)

    def set_identity(self, identity: SessionIdentity | None) -> None:
        self._identity = identity
        self._emit(StoreChangeKind.IDENTITY)

    # -- persistence ---------------------------------------------------------

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            conversations=list(self._collections[ThreadKind.DIRECT]),
            groups=list(self._collections[ThreadKind.GROUP]),
            messages={tid: list(msgs) for tid, msgs in self._messages.items()},
            identity=self._identity,
        )

    def restore(self, snapshot: StoreSnapshot) -> None:
        self._collections = {
            ThreadKind.DIRECT: list(snapshot.conversations),
            ThreadKind.GROUP: list(snapshot.groups),
        }
        self._messages = {tid: list(msgs) for tid, msgs in snapshot.messages.items()}
        self._identity = snapshot.identity
        self._selection = Selection()
        self._emit(StoreChangeKind.RESET)

    async def load(self) -> bool:
        """Restore the persisted snapshot. A missing or corrupt cache starts empty."""
        if self._storage is None:
            return False
        try:
            partitions = await self._storage.read()
            if partitions is None:
                return False
            snapshot = decode_snapshot(partitions)
        except StorageError:
            logger.exception("Could not load cached snapshot, starting empty")
            return False
        self.restore(snapshot)
        logger.info(
            "Restored cache: %d direct, %d group threads",
            len(snapshot.conversations), len(snapshot.groups),
        )
        return True

    async def save(self) -> bool:
        """Write one atomic snapshot. Failures keep the session in memory only."""
        if self._storage is None:
            return False
        try:
            await self._storage.write(encode_snapshot(self.snapshot()))
        except StorageError:
            logger.exception("Snapshot write failed, continuing with in-memory state")
            return False
        return True

    def clear_ephemeral(self) -> None:
        """Drop collections, message lists and selection; keep the identity."""
        self._collections = {ThreadKind.DIRECT: [], ThreadKind.GROUP: []}
        self._messages = {}
        self._selection = Selection(collection=self._selection.collection)
        self._emit(StoreChangeKind.RESET)


def _clamp(messages: list[Message], idx: int, sent_at: int) -> int:
    """Keep ``messages`` non-decreasing by sent_at around position ``idx``."""
    if idx > 0:
        sent_at = max(sent_at, messages[idx - 1].sent_at)
    if idx + 1 < len(messages):
        sent_at = min(sent_at, messages[idx + 1].sent_at)
    return sent_at
