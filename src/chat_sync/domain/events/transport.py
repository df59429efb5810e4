"""Events delivered by the real-time transport to subscribers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message


@dataclass(frozen=True, slots=True)
class MessageReceived:
    message: Message


@dataclass(frozen=True, slots=True)
class TypingChanged:
    conversation_id: int
    user_id: int
    user_name: str
    is_typing: bool


@dataclass(frozen=True, slots=True)
class ConversationAdded:
    conversation: Conversation


@dataclass(frozen=True, slots=True)
class Connected:
    reconnect: bool = False


@dataclass(frozen=True, slots=True)
class Disconnected:
    reason: str = ""


TransportEvent = Union[
    MessageReceived,
    TypingChanged,
    ConversationAdded,
    Connected,
    Disconnected,
]
