"""Wire models for REST and real-time payloads (camelCase on the wire)."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class MediaTypeSchema(_WireModel):
    media_type_id: int | None = None
    media_name: str | None = None


class MediaSchema(_WireModel):
    message_media_id: int | None = None
    url: str = Field(validation_alias=AliasChoices("mediaUrl", "url"))
    media_type_id: int
    media_type: MediaTypeSchema | None = None


class UserSchema(_WireModel):
    user_id: int
    first_name: str | None = ""
    last_name: str | None = ""
    email: str | None = None
    avatar: str | None = None


class MessageSchema(_WireModel):
    message_id: int
    conversation_id: int
    sender_id: int
    content: str | None = ""
    created_at: datetime
    sender: UserSchema | None = None
    media: list[MediaSchema] | None = None


class MemberSchema(_WireModel):
    conversation_member_id: int | None = None
    role: str | None = None
    user: UserSchema


class ConversationSchema(_WireModel):
    conversation_id: int
    type: str = "private"
    name: str | None = None
    members: list[MemberSchema] | None = None
    last_message: MessageSchema | None = None
    unread_count: int | None = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class FriendSchema(_WireModel):
    id: int
    user: UserSchema = Field(validation_alias=AliasChoices("User", "user"))


class PaginationSchema(_WireModel):
    total: int = 0
    page: int = 1
    limit: int = 20


class ListResponse(_WireModel):
    data: list[dict[str, Any]] = []
    pagination: PaginationSchema | None = None


class UploadedMediaSchema(_WireModel):
    url: str
    media_type_id: int


class MediaInputSchema(_WireModel):
    media_type_id: int
    url: str


class SendMessageRequest(_WireModel):
    conversation_id: int
    content: str
    media: list[MediaInputSchema] | None = None


class TypingSchema(_WireModel):
    conversation_id: int
    user_id: int
    user_name: str | None = ""
    is_typing: bool
