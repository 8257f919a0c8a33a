from __future__ import annotations

from typing import Protocol

from chat_client.application.dto.remote import (
    DirectThreadRecord,
    GroupThreadRecord,
    MessageRecord,
    ProfileRecord,
    SendAck,
)


class RemoteApi(Protocol):
    """Backend calls consumed by the sync engine, dispatcher and identity resolver.

    Every method raises ``NetworkError`` (or its ``ApiError`` subclass) on failure.
    """

    async def fetch_profile(self) -> ProfileRecord: ...

    async def list_direct_threads(self) -> list[DirectThreadRecord]: ...

    async def list_group_threads(self) -> list[GroupThreadRecord]: ...

    async def fetch_messages(self, thread_id: str, *, limit: int = 50) -> list[MessageRecord]: ...

    async def send_message(
        self,
        thread_id: str,
        content: str,
        *,
        message_type: str = "text",
    ) -> SendAck: ...
