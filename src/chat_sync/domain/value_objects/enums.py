from __future__ import annotations

from enum import IntEnum, StrEnum


class MediaKind(IntEnum):
    IMAGE = 1
    VIDEO = 2
    FILE = 0  # any other media type id

    @classmethod
    def from_type_id(cls, media_type_id: int) -> MediaKind:
        if media_type_id == cls.IMAGE:
            return cls.IMAGE
        if media_type_id == cls.VIDEO:
            return cls.VIDEO
        return cls.FILE


class ConversationType(StrEnum):
    PRIVATE = "private"
    GROUP = "group"


class WsEventType(StrEnum):
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    TYPING = "typing"
    NEW_MESSAGE = "newMessage"
    NEW_CONVERSATION = "newConversation"
    PING = "ping"
    PONG = "pong"
    ERROR = "error"
