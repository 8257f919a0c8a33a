from __future__ import annotations

from dataclasses import dataclass, field

from chat_client.domain.entities.identity import SessionIdentity
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.thread import Thread


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    """Everything the store persists, written as one unit."""

    conversations: list[Thread] = field(default_factory=list)
    groups: list[Thread] = field(default_factory=list)
    messages: dict[str, list[Message]] = field(default_factory=dict)
    identity: SessionIdentity | None = None
