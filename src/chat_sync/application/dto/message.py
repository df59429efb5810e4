from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class MediaUpload:
    url: str
    media_type_id: int


@dataclass(frozen=True, slots=True)
class UploadFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class SendMessageDTO:
    conversation_id: int
    content: str = ""
    media: tuple[MediaUpload, ...] = field(default_factory=tuple)
