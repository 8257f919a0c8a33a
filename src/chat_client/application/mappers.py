"""Explicit mapping from wire records to domain objects.

Defaulting rules:
- missing display name -> ``"Unknown"`` for direct threads, ``"Group <id>"`` for groups
- missing preview -> empty string
- missing or unparsable timestamp -> 0
- missing or negative counters -> 0
- unknown session identity -> every history message is ``received``
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from chat_client.application.dto.remote import (
    DirectThreadRecord,
    GroupThreadRecord,
    MessageRecord,
    ProfileRecord,
)
from chat_client.domain.entities.identity import SessionIdentity
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.thread import Thread
from chat_client.domain.value_objects.enums import DeliveryState, Direction, ThreadKind

logger = logging.getLogger(__name__)

UNKNOWN_CONTACT = "Unknown"


def to_epoch_ms(value: int | float | str | None) -> int:
    """Server timestamps are epoch seconds or ISO-8601 strings."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value * 1000)
    text = value.strip()
    if not text:
        return 0
    try:
        return int(float(text) * 1000)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparsable server timestamp %r", value)
        return 0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _count(value: int | None) -> int:
    return max(value or 0, 0)


def direct_record_to_thread(record: DirectThreadRecord) -> Thread:
    return Thread(
        id=record.id,
        kind=ThreadKind.DIRECT,
        name=(record.name or "").strip() or UNKNOWN_CONTACT,
        last_message_preview=record.last_message or "",
        last_activity_at=to_epoch_ms(record.last_message_at),
        unread_count=_count(record.unread_count),
        is_online=bool(record.is_online),
    )


def group_record_to_thread(record: GroupThreadRecord) -> Thread:
    return Thread(
        id=record.id,
        kind=ThreadKind.GROUP,
        name=(record.name or "").strip() or f"Group {record.id}",
        last_message_preview=record.last_message or record.description or "",
        last_activity_at=to_epoch_ms(record.last_message_at),
        unread_count=_count(record.unread_count),
        member_count=_count(record.member_count),
    )


def record_to_message(
    thread_id: str,
    record: MessageRecord,
    identity: SessionIdentity | None,
) -> Message:
    sent_by_me = identity is not None and identity.is_me(record.sender_id)
    return Message(
        id=record.id,
        thread_id=thread_id,
        text=record.content or "",
        sent_at=to_epoch_ms(record.sent_at),
        direction=Direction.SENT if sent_by_me else Direction.RECEIVED,
        delivery_state=DeliveryState.CONFIRMED,
        sender_id=record.sender_id,
    )


def profile_to_identity(record: ProfileRecord) -> SessionIdentity:
    return SessionIdentity(
        user_id=record.user_id,
        username=record.username or "",
        email=record.email or "",
        is_admin=record.is_admin,
    )
