from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import ThreadKind
from chat_client.domain.value_objects.ids import ThreadId


@dataclass(frozen=True, slots=True)
class Thread:
    id: ThreadId
    kind: ThreadKind
    name: str
    last_message_preview: str = ""
    last_activity_at: int = 0
    unread_count: int = 0
    # direct only
    is_online: bool = False
    # group only
    member_count: int = 0
