"""Wire records returned by the remote API.

Field names on the server are not consistent between endpoints, so every
field accepts the known spellings through ``AliasChoices``. Defaulting and
conversion to domain objects happens in ``chat_client.application.mappers``.
"""
from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

_Timestamp = int | float | str | None


class RemoteRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True, populate_by_name=True)


class ProfileRecord(RemoteRecord):
    user_id: str = Field(validation_alias=AliasChoices("user_id", "id"))
    username: str = ""
    email: str | None = None
    is_admin: bool = False


class DirectThreadRecord(RemoteRecord):
    id: str = Field(validation_alias=AliasChoices("id", "chat_id", "conversation_id"))
    name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("name", "username", "display_name"),
    )
    last_message: str | None = Field(
        default=None,
        validation_alias=AliasChoices("last_message", "lastMessage", "last_message_preview"),
    )
    last_message_at: _Timestamp = Field(
        default=None,
        validation_alias=AliasChoices("last_message_at", "timestamp", "updated_at"),
    )
    unread_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("unread_count", "unreadCount"),
    )
    is_online: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("is_online", "isOnline", "online"),
    )


class GroupThreadRecord(RemoteRecord):
    id: str = Field(validation_alias=AliasChoices("id", "group_id", "chat_id"))
    name: str | None = None
    description: str | None = None
    last_message: str | None = Field(
        default=None,
        validation_alias=AliasChoices("last_message", "lastMessage", "last_message_preview"),
    )
    last_message_at: _Timestamp = Field(
        default=None,
        validation_alias=AliasChoices("last_message_at", "timestamp", "created_at"),
    )
    unread_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("unread_count", "unreadCount"),
    )
    member_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("member_count", "members_count", "memberCount"),
    )


class MessageRecord(RemoteRecord):
    id: str = Field(validation_alias=AliasChoices("id", "message_id"))
    sender_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sender_id", "user_id"),
    )
    content: str | None = Field(
        default=None,
        validation_alias=AliasChoices("content", "text", "body"),
    )
    sent_at: _Timestamp = Field(
        default=None,
        validation_alias=AliasChoices("sent_at", "created_at", "timestamp"),
    )


class SendAck(RemoteRecord):
    message_id: str = Field(validation_alias=AliasChoices("message_id", "id"))
    sent_at: _Timestamp = None


class ConversationsPayload(RemoteRecord):
    conversations: list[DirectThreadRecord] = Field(default_factory=list)


class GroupsPayload(RemoteRecord):
    groups: list[GroupThreadRecord] = Field(default_factory=list)


class MessagesPayload(RemoteRecord):
    messages: list[MessageRecord] = Field(default_factory=list)

    @field_validator("messages", mode="before")
    @classmethod
    def _none_is_empty(cls, value: object) -> object:
        return [] if value is None else value
