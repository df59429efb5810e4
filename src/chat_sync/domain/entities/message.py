from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_sync.domain.value_objects.enums import MediaKind


@dataclass(frozen=True, slots=True)
class Media:
    url: str
    media_type_id: int
    id: int | None = None
    name: str | None = None

    @property
    def kind(self) -> MediaKind:
        return MediaKind.from_type_id(self.media_type_id)


@dataclass(frozen=True, slots=True)
class Sender:
    user_id: int
    first_name: str = ""
    last_name: str = ""
    avatar: str | None = None


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    conversation_id: int
    sender_id: int
    content: str
    media: tuple[Media, ...]
    created_at: datetime
    sender: Sender | None = None

    @property
    def has_attachments(self) -> bool:
        return bool(self.media)
