from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from typing import Any

from chat_client.application.dto.snapshot import StoreSnapshot
from chat_client.application.exceptions import StorageError
from chat_client.domain.entities.identity import SessionIdentity
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.thread import Thread
from chat_client.domain.value_objects.enums import DeliveryState, Direction, ThreadKind

CONVERSATIONS = "conversations"
GROUPS = "groups"
MESSAGES = "messages"
IDENTITY = "identity"

PARTITIONS = (CONVERSATIONS, GROUPS, MESSAGES, IDENTITY)


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, Enum):
            return o.value
        return super().default(o)


def _dumps(value: Any) -> str:
    return json.dumps(value, cls=_Encoder, separators=(",", ":"))


def encode_snapshot(snapshot: StoreSnapshot) -> dict[str, str]:
    return {
        CONVERSATIONS: _dumps([asdict(t) for t in snapshot.conversations]),
        GROUPS: _dumps([asdict(t) for t in snapshot.groups]),
        MESSAGES: _dumps(
            {tid: [asdict(m) for m in msgs] for tid, msgs in snapshot.messages.items()}
        ),
        IDENTITY: _dumps(asdict(snapshot.identity) if snapshot.identity else None),
    }


def _thread(raw: dict[str, Any]) -> Thread:
    return Thread(**{**raw, "kind": ThreadKind(raw["kind"])})


def _message(raw: dict[str, Any]) -> Message:
    return Message(
        **{
            **raw,
            "direction": Direction(raw["direction"]),
            "delivery_state": DeliveryState(raw["delivery_state"]),
        }
    )


def decode_snapshot(partitions: dict[str, str]) -> StoreSnapshot:
    """Rebuild a snapshot; missing partitions decode as empty."""
    try:
        conversations = json.loads(partitions.get(CONVERSATIONS) or "[]")
        groups = json.loads(partitions.get(GROUPS) or "[]")
        messages = json.loads(partitions.get(MESSAGES) or "{}")
        identity = json.loads(partitions.get(IDENTITY) or "null")
        return StoreSnapshot(
            conversations=[_thread(t) for t in conversations],
            groups=[_thread(t) for t in groups],
            messages={tid: [_message(m) for m in msgs] for tid, msgs in messages.items()},
            identity=SessionIdentity(**identity) if identity else None,
        )
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        raise StorageError(f"Corrupt snapshot: {exc}") from exc
