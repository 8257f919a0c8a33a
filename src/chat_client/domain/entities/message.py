from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import DeliveryState, Direction
from chat_client.domain.value_objects.ids import MessageId, ThreadId


@dataclass(frozen=True, slots=True)
class Message:
    id: MessageId
    thread_id: ThreadId
    text: str
    sent_at: int
    direction: Direction
    delivery_state: DeliveryState = DeliveryState.CONFIRMED
    client_id: MessageId | None = None
    sender_id: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.delivery_state == DeliveryState.PENDING

    def matches(self, message_id: str) -> bool:
        """True if ``message_id`` is either the current id or the local id."""
        return self.id == message_id or (
            self.client_id is not None and self.client_id == message_id
        )
