"""httpx-backed implementation of the ChatApi port."""
from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Sequence

import httpx
from pydantic import ValidationError

from chat_sync.application.dto.message import MediaUpload, SendMessageDTO, UploadFile
from chat_sync.application.dto.page import Page
from chat_sync.application.exceptions import FetchError, UploadError
from chat_sync.config import settings
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.friend import Friend
from chat_sync.domain.entities.message import Message
from chat_sync.infrastructure.api import mappers
from chat_sync.infrastructure.api.schemas import (
    ConversationSchema,
    FriendSchema,
    ListResponse,
    MediaInputSchema,
    MessageSchema,
    SendMessageRequest,
    UploadedMediaSchema,
)

logger = logging.getLogger(__name__)

CONVERSATIONS_PATH = "/v1/conversations"
MESSAGES_PATH = "/v1/messages"
UPLOAD_PATH = "/v1/messages/upload"
FRIENDS_PATH = "/v1/friends"


class HttpChatApi:
    """Implements application.ports.api.ChatApi."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        token = settings.ACCESS_TOKEN if token is None else token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            headers=headers,
            timeout=httpx.Timeout(timeout or settings.HTTP_TIMEOUT_SECONDS),
        )

    async def __aenter__(self) -> HttpChatApi:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_conversations(
        self, *, page: int = 1, limit: int = 20
    ) -> Page[Conversation]:
        body = await self._get_json(CONVERSATIONS_PATH, {"page": page, "limit": limit})
        listing = self._parse(ListResponse, body)
        try:
            items = [
                mappers.conversation_to_entity(ConversationSchema.model_validate(raw))
                for raw in listing.data
            ]
        except ValidationError as exc:
            raise FetchError(f"Malformed conversation payload: {exc}") from exc
        return self._page(items, listing, page, limit)

    async def list_messages(
        self, conversation_id: int, *, page: int = 1, limit: int = 20
    ) -> Page[Message]:
        body = await self._get_json(
            MESSAGES_PATH,
            {"conversationId": conversation_id, "page": page, "limit": limit},
        )
        listing = self._parse(ListResponse, body)
        try:
            items = [
                mappers.message_to_entity(MessageSchema.model_validate(raw))
                for raw in listing.data
            ]
        except ValidationError as exc:
            raise FetchError(f"Malformed message payload: {exc}") from exc
        return self._page(items, listing, page, limit)

    async def send_message(self, dto: SendMessageDTO) -> Message:
        request = SendMessageRequest(
            conversation_id=dto.conversation_id,
            content=dto.content,
            media=[
                MediaInputSchema(media_type_id=m.media_type_id, url=m.url)
                for m in dto.media
            ] or None,
        )
        body = await self._request(
            "POST",
            MESSAGES_PATH,
            json=request.model_dump(by_alias=True, exclude_none=True),
        )
        # The backend answers either {"data": message} or the bare message.
        raw = body.get("data", body) if isinstance(body, dict) else body
        return mappers.message_to_entity(self._parse(MessageSchema, raw))

    async def upload_media(self, files: Sequence[UploadFile]) -> list[MediaUpload]:
        multipart = [
            ("files", (f.filename, f.content, f.content_type)) for f in files
        ]
        try:
            body = await self._request("POST", UPLOAD_PATH, files=multipart)
        except FetchError as exc:
            raise UploadError(exc.detail, exc.status_code) from exc
        raw_items = body.get("data") if isinstance(body, dict) else None
        if not isinstance(raw_items, list):
            raise UploadError("Upload response carried no media")
        try:
            uploaded = [UploadedMediaSchema.model_validate(item) for item in raw_items]
        except ValidationError as exc:
            raise UploadError(f"Malformed upload payload: {exc}") from exc
        return [MediaUpload(url=u.url, media_type_id=u.media_type_id) for u in uploaded]

    async def list_friends(self, *, search: str | None = None) -> list[Friend]:
        params = {"search": search} if search else None
        body = await self._get_json(FRIENDS_PATH, params)
        listing = self._parse(ListResponse, body)
        try:
            return [
                mappers.friend_to_entity(FriendSchema.model_validate(raw))
                for raw in listing.data
            ]
        except ValidationError as exc:
            raise FetchError(f"Malformed friend payload: {exc}") from exc

    async def _get_json(self, path: str, params: dict[str, Any] | None) -> Any:
        return await self._request("GET", path, params=params)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise FetchError(f"{method} {path}: {exc}") from exc

        if resp.is_error:
            detail = _error_detail(resp)
            logger.warning("%s %s -> %d: %s", method, path, resp.status_code, detail)
            raise FetchError(detail, resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(f"{method} {path}: invalid JSON body", resp.status_code) from exc

    @staticmethod
    def _parse(model: Any, raw: Any) -> Any:
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            raise FetchError(f"Malformed response: {exc}") from exc

    @staticmethod
    def _page(items: list[Any], listing: ListResponse, page: int, limit: int) -> Page[Any]:
        pagination = listing.pagination
        return Page(
            items=items,
            page=pagination.page if pagination else page,
            limit=pagination.limit if pagination else limit,
            total=pagination.total if pagination else len(items),
        )


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason_phrase or f"HTTP {resp.status_code}"
