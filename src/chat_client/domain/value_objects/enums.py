from __future__ import annotations

from enum import StrEnum


class ThreadKind(StrEnum):
    DIRECT = "direct"
    GROUP = "group"

    @property
    def other(self) -> ThreadKind:
        return ThreadKind.GROUP if self is ThreadKind.DIRECT else ThreadKind.DIRECT


class Direction(StrEnum):
    SENT = "sent"
    RECEIVED = "received"


class DeliveryState(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class StoreChangeKind(StrEnum):
    THREADS = "threads"
    MESSAGES = "messages"
    SELECTION = "selection"
    IDENTITY = "identity"
    RESET = "reset"


class NoticeLevel(StrEnum):
    INFO = "info"
    ERROR = "error"
