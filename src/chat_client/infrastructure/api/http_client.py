"""JSON-over-HTTP implementation of the RemoteApi port."""
from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chat_client.application.dto.remote import (
    ConversationsPayload,
    DirectThreadRecord,
    GroupsPayload,
    GroupThreadRecord,
    MessageRecord,
    MessagesPayload,
    ProfileRecord,
    SendAck,
)
from chat_client.application.exceptions import ApiError, NetworkError
from chat_client.config import Settings

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

PROFILE_PATH = "/api/profile"
MESSAGES_PATH = "/api/messages"
CHATS_PATH = "/api/chats"
SEND_PATH = "/api/messages/send"


def _wire_id(thread_id: str) -> int | str:
    """The backend keys chats by integer id; local ids are passed through."""
    return int(thread_id) if thread_id.isdigit() else thread_id


class HttpRemoteApi:
    """Implements application.ports.api.RemoteApi over httpx."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpRemoteApi:
        cookies = {settings.AUTH_COOKIE_NAME: settings.AUTH_TOKEN} if settings.AUTH_TOKEN else None
        client = httpx.AsyncClient(
            base_url=settings.API_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            cookies=cookies,
            headers={"Accept": "application/json"},
        )
        return cls(client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_profile(self) -> ProfileRecord:
        data = await self._request("GET", PROFILE_PATH)
        return self._parse(ProfileRecord, data)

    async def list_direct_threads(self) -> list[DirectThreadRecord]:
        data = await self._request("GET", MESSAGES_PATH)
        return self._parse(ConversationsPayload, data).conversations

    async def list_group_threads(self) -> list[GroupThreadRecord]:
        data = await self._request("GET", CHATS_PATH)
        return self._parse(GroupsPayload, data).groups

    async def fetch_messages(self, thread_id: str, *, limit: int = 50) -> list[MessageRecord]:
        data = await self._request(
            "GET",
            MESSAGES_PATH,
            params={"chat_id": thread_id, "limit": limit},
        )
        return self._parse(MessagesPayload, data).messages

    async def send_message(
        self,
        thread_id: str,
        content: str,
        *,
        message_type: str = "text",
    ) -> SendAck:
        data = await self._request(
            "POST",
            SEND_PATH,
            json={
                "chat_id": _wire_id(thread_id),
                "content": content,
                "message_type": message_type,
            },
        )
        return self._parse(SendAck, data)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            raise NetworkError(
                f"{method} {path} returned {response.status_code} with content type {content_type!r}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError(f"{method} {path} returned invalid JSON") from exc

        if response.is_error or (isinstance(body, dict) and body.get("status") == "error"):
            code = body.get("code", "") if isinstance(body, dict) else ""
            message = body.get("message", "") if isinstance(body, dict) else ""
            raise ApiError(
                message or f"{method} {path} returned {response.status_code}",
                code=code or "",
                status_code=response.status_code,
            )

        if isinstance(body, dict) and "data" in body:
            return body["data"]
        return body

    @staticmethod
    def _parse(model: type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            logger.debug("Malformed payload for %s: %s", model.__name__, exc)
            raise NetworkError(f"Malformed {model.__name__} payload") from exc
