from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import NoticeLevel, StoreChangeKind, ThreadKind


@dataclass(frozen=True, slots=True)
class StoreChange:
    """Emitted to observers after every store mutation."""

    kind: StoreChangeKind
    thread_id: str | None = None
    collection: ThreadKind | None = None


@dataclass(frozen=True, slots=True)
class Notice:
    """Inline, auto-dismissing message shown to the user."""

    id: int
    text: str
    level: NoticeLevel = NoticeLevel.ERROR
    thread_id: str | None = None
