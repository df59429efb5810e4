from __future__ import annotations

from typing import Protocol, Sequence

from chat_sync.application.dto.message import MediaUpload, SendMessageDTO, UploadFile
from chat_sync.application.dto.page import Page
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.friend import Friend
from chat_sync.domain.entities.message import Message


class ChatApi(Protocol):
    async def list_conversations(
        self, *, page: int = 1, limit: int = 20
    ) -> Page[Conversation]: ...

    async def list_messages(
        self, conversation_id: int, *, page: int = 1, limit: int = 20
    ) -> Page[Message]:
        """Return one page of messages, newest first."""
        ...

    async def send_message(self, dto: SendMessageDTO) -> Message: ...

    async def upload_media(self, files: Sequence[UploadFile]) -> list[MediaUpload]: ...

    async def list_friends(self, *, search: str | None = None) -> list[Friend]: ...
