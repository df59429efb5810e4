from __future__ import annotations

from fastapi import APIRouter

from chat_sync.api.v1.routers.ws import get_manager

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz() -> dict[str, object]:
    manager = get_manager()
    return {
        "status": "ready",
        "connections": manager.connection_count,
        "rooms": manager.room_count,
    }
