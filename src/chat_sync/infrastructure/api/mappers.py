from __future__ import annotations

from datetime import datetime, timezone

from chat_sync.domain.entities.conversation import Conversation, Member
from chat_sync.domain.entities.friend import Friend
from chat_sync.domain.entities.message import Media, Message, Sender
from chat_sync.domain.value_objects.enums import ConversationType
from chat_sync.infrastructure.api.schemas import (
    ConversationSchema,
    FriendSchema,
    MediaSchema,
    MessageSchema,
    UserSchema,
)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def media_to_entity(schema: MediaSchema) -> Media:
    return Media(
        url=schema.url,
        media_type_id=schema.media_type_id,
        id=schema.message_media_id,
        name=schema.media_type.media_name if schema.media_type else None,
    )


def sender_to_entity(schema: UserSchema) -> Sender:
    return Sender(
        user_id=schema.user_id,
        first_name=schema.first_name or "",
        last_name=schema.last_name or "",
        avatar=schema.avatar,
    )


def message_to_entity(schema: MessageSchema) -> Message:
    return Message(
        id=schema.message_id,
        conversation_id=schema.conversation_id,
        sender_id=schema.sender_id,
        content=schema.content or "",
        media=tuple(media_to_entity(m) for m in schema.media or ()),
        created_at=_aware(schema.created_at),
        sender=sender_to_entity(schema.sender) if schema.sender else None,
    )


def member_to_entity(schema: UserSchema) -> Member:
    return Member(
        user_id=schema.user_id,
        first_name=schema.first_name or "",
        last_name=schema.last_name or "",
        avatar=schema.avatar,
        email=schema.email,
    )


def conversation_to_entity(schema: ConversationSchema) -> Conversation:
    last_message = message_to_entity(schema.last_message) if schema.last_message else None
    if last_message is not None:
        last_activity = last_message.created_at
    else:
        last_activity = _aware(schema.updated_at or schema.created_at or _EPOCH)
    return Conversation(
        id=schema.conversation_id,
        name=schema.name,
        members=tuple(member_to_entity(m.user) for m in schema.members or ()),
        last_message=last_message,
        last_activity=last_activity,
        unread_count=schema.unread_count or 0,
        type=ConversationType.GROUP if schema.type == "group" else ConversationType.PRIVATE,
    )


def friend_to_entity(schema: FriendSchema) -> Friend:
    return Friend(
        id=schema.id,
        user_id=schema.user.user_id,
        first_name=schema.user.first_name or "",
        last_name=schema.user.last_name or "",
        email=schema.user.email,
        avatar=schema.user.avatar,
    )
