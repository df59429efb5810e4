"""WebSocket message envelope models and inbound event decoding."""
from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from chat_sync.domain.events.transport import (
    ConversationAdded,
    MessageReceived,
    TransportEvent,
    TypingChanged,
)
from chat_sync.domain.value_objects.enums import WsEventType
from chat_sync.infrastructure.api import mappers
from chat_sync.infrastructure.api.schemas import (
    ConversationSchema,
    MessageSchema,
    TypingSchema,
)

logger = logging.getLogger(__name__)


class WsEnvelope(BaseModel):
    """One text frame, either direction."""

    type: str  # join-room | leave-room | typing | newMessage | newConversation | ping | pong | error
    data: dict[str, Any] = {}


class MalformedFrame(ValueError):
    pass


def encode(event_name: str, payload: dict[str, Any]) -> str:
    return WsEnvelope(type=str(event_name), data=payload).model_dump_json()


def decode(raw: str | bytes) -> TransportEvent | None:
    """Turn an inbound frame into a typed event.

    Returns None for frames that carry no event for subscribers (pong,
    unknown types). Raises MalformedFrame when the frame cannot be parsed.
    """
    try:
        envelope = WsEnvelope.model_validate_json(raw)
    except ValidationError as exc:
        raise MalformedFrame(str(exc)) from exc

    try:
        if envelope.type == WsEventType.NEW_MESSAGE:
            schema = MessageSchema.model_validate(envelope.data)
            return MessageReceived(message=mappers.message_to_entity(schema))

        if envelope.type == WsEventType.TYPING:
            typing = TypingSchema.model_validate(envelope.data)
            return TypingChanged(
                conversation_id=typing.conversation_id,
                user_id=typing.user_id,
                user_name=typing.user_name or "",
                is_typing=typing.is_typing,
            )

        if envelope.type == WsEventType.NEW_CONVERSATION:
            raw_conv = envelope.data.get("conversation", envelope.data)
            conv = ConversationSchema.model_validate(raw_conv)
            return ConversationAdded(conversation=mappers.conversation_to_entity(conv))
    except ValidationError as exc:
        raise MalformedFrame(f"{envelope.type}: {exc}") from exc

    if envelope.type == WsEventType.ERROR:
        logger.warning("Relay reported error: %s", envelope.data)
    elif envelope.type != WsEventType.PONG:
        logger.debug("Ignoring unknown WS event: %s", envelope.type)
    return None
