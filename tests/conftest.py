"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from chat_client.application.dto.remote import (
    DirectThreadRecord,
    GroupThreadRecord,
    MessageRecord,
    ProfileRecord,
    SendAck,
)
from chat_client.application.exceptions import NetworkError, StorageError
from chat_client.domain.entities.identity import SessionIdentity
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.thread import Thread
from chat_client.domain.value_objects.enums import DeliveryState, Direction, ThreadKind
from chat_client.services.message_dispatcher import MessageDispatcher
from chat_client.services.notices import NoticeBoard
from chat_client.services.selection_tracker import SelectionTracker
from chat_client.services.sync_engine import SyncEngine
from chat_client.services.thread_store import ThreadStore

ME = SessionIdentity(user_id="7", username="me", email="me@example.com")

BASE_MS = 1_700_000_000_000


def make_thread(
    thread_id: str = "t1",
    *,
    kind: ThreadKind = ThreadKind.DIRECT,
    name: str = "Alice",
    unread: int = 0,
) -> Thread:
    return Thread(id=thread_id, kind=kind, name=name, unread_count=unread)


def make_message(
    message_id: str = "m1",
    *,
    thread_id: str = "t1",
    text: str = "hello",
    sent_at: int = BASE_MS,
    direction: Direction = Direction.RECEIVED,
    state: DeliveryState = DeliveryState.CONFIRMED,
    client_id: str | None = None,
) -> Message:
    return Message(
        id=message_id,
        thread_id=thread_id,
        text=text,
        sent_at=sent_at,
        direction=direction,
        delivery_state=state,
        client_id=client_id,
    )


def direct_record(**fields: Any) -> DirectThreadRecord:
    return DirectThreadRecord.model_validate(fields)


def group_record(**fields: Any) -> GroupThreadRecord:
    return GroupThreadRecord.model_validate(fields)


def message_record(**fields: Any) -> MessageRecord:
    return MessageRecord.model_validate(fields)


@dataclass
class FakeClock:
    ms: int = BASE_MS
    mono: float = 1000.0

    def now_ms(self) -> int:
        return self.ms

    def monotonic(self) -> float:
        return self.mono


@dataclass
class InMemorySnapshotStorage:
    partitions: dict[str, str] | None = None
    writes: int = 0
    fail_writes: bool = False

    async def read(self) -> dict[str, str] | None:
        return dict(self.partitions) if self.partitions is not None else None

    async def write(self, partitions: dict[str, str]) -> None:
        if self.fail_writes:
            raise StorageError("quota exceeded")
        self.partitions = dict(partitions)
        self.writes += 1


@dataclass
class FakeRemoteApi:
    """In-memory backend. Methods listed in ``failing`` raise NetworkError.

    With ``hold`` set for a method, each call parks on a future appended to
    ``held`` so tests can resolve responses in any order.
    """

    profile: ProfileRecord | None = None
    direct: list[DirectThreadRecord] = field(default_factory=list)
    groups: list[GroupThreadRecord] = field(default_factory=list)
    history: dict[str, list[MessageRecord]] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    hold: set[str] = field(default_factory=set)
    held: list[tuple[str, tuple[Any, ...], asyncio.Future[Any]]] = field(default_factory=list)
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    sent_at: int = BASE_MS // 1000
    _next_id: int = 100

    def calls_to(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]

    async def _enter(self, name: str, *args: Any) -> Any:
        self.calls.append((name, *args))
        if name in self.failing:
            raise NetworkError(f"{name}: connection refused")
        if name in self.hold:
            fut: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
            self.held.append((name, args, fut))
            return await fut
        return None

    async def fetch_profile(self) -> ProfileRecord:
        held = await self._enter("fetch_profile")
        if held is not None:
            return held
        if self.profile is None:
            raise NetworkError("unauthorized")
        return self.profile

    async def list_direct_threads(self) -> list[DirectThreadRecord]:
        held = await self._enter("list_direct_threads")
        return held if held is not None else list(self.direct)

    async def list_group_threads(self) -> list[GroupThreadRecord]:
        held = await self._enter("list_group_threads")
        return held if held is not None else list(self.groups)

    async def fetch_messages(self, thread_id: str, *, limit: int = 50) -> list[MessageRecord]:
        held = await self._enter("fetch_messages", thread_id, limit)
        if held is not None:
            return held
        return list(self.history.get(thread_id, []))[-limit:]

    async def send_message(self, thread_id: str, content: str, *, message_type: str = "text") -> SendAck:
        held = await self._enter("send_message", thread_id, content)
        if held is not None:
            return held
        self._next_id += 1
        message_id = str(self._next_id)
        self.history.setdefault(thread_id, []).append(
            message_record(
                id=message_id,
                sender_id=self.profile.user_id if self.profile else None,
                content=content,
                sent_at=self.sent_at,
            )
        )
        return SendAck(message_id=message_id, sent_at=self.sent_at)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> InMemorySnapshotStorage:
    return InMemorySnapshotStorage()


@pytest.fixture
def store(storage) -> ThreadStore:
    return ThreadStore(storage)


@pytest.fixture
def api() -> FakeRemoteApi:
    return FakeRemoteApi(
        profile=ProfileRecord.model_validate(
            {"user_id": 7, "username": "me", "email": "me@example.com", "is_admin": False}
        ),
    )


@pytest.fixture
def notices() -> NoticeBoard:
    return NoticeBoard(dismiss_after=60)


@pytest.fixture
def sync(store, api, clock) -> SyncEngine:
    return SyncEngine(store, api, history_limit=50, match_window_ms=10_000, clock=clock)


@pytest.fixture
def dispatcher(store, api, sync, notices, clock) -> MessageDispatcher:
    return MessageDispatcher(
        store, api, sync, notices,
        max_length=10_000,
        refresh_after_send=None,
        clock=clock,
    )


@pytest.fixture
def tracker(store, sync, clock) -> SelectionTracker:
    return SelectionTracker(store, sync, history_ttl=30.0, clock=clock)
