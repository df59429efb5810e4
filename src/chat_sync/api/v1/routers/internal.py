"""Backend-facing hook: publish an event to a conversation room and/or users."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from chat_sync.api.v1.routers.ws import get_manager

router = APIRouter(prefix="/internal", tags=["internal"])


class PublishRequest(BaseModel):
    type: str
    conversation_id: int | None = Field(None, alias="conversationId")
    # Members to reach even when they have not joined the room.
    user_ids: list[int] = Field(default_factory=list, alias="userIds")
    data: dict[str, Any] = {}


class PublishResponse(BaseModel):
    delivered: int


@router.post("/events", response_model=PublishResponse)
async def publish_event(body: PublishRequest) -> PublishResponse:
    if body.conversation_id is None and not body.user_ids:
        raise HTTPException(status_code=422, detail="conversationId or userIds is required")
    delivered = await get_manager().broadcast_to_room(
        body.conversation_id, body.type, body.data, user_ids=body.user_ids,
    )
    return PublishResponse(delivered=delivered)
