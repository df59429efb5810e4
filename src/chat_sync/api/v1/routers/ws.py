from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from chat_sync.domain.value_objects.enums import WsEventType
from chat_sync.infrastructure.ws.manager import ConnectionManager
from chat_sync.infrastructure.ws.protocol import WsEnvelope

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])

manager = ConnectionManager()


def get_manager() -> ConnectionManager:
    return manager


@router.websocket("/ws")
async def ws_relay(
    websocket: WebSocket,
    user_id: int = Query(0, alias="userId"),
    user_name: str = Query("", alias="userName"),
) -> None:
    connection_id = uuid.uuid4().hex
    await manager.connect(websocket, connection_id, user_id)
    try:
        await _read_loop(websocket, connection_id, user_id, user_name)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", connection_id)
    finally:
        manager.disconnect(connection_id)


async def _read_loop(
    ws: WebSocket, connection_id: str, user_id: int, user_name: str,
) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsEnvelope.model_validate_json(raw)
        except ValidationError:
            await _send_error(ws, {"code": "invalid_payload"})
            continue

        if msg.type == WsEventType.PING:
            await ws.send_text(WsEnvelope(type=WsEventType.PONG.value).model_dump_json())

        elif msg.type in (WsEventType.JOIN_ROOM, WsEventType.LEAVE_ROOM):
            conversation_id = _conversation_id(msg.data)
            if conversation_id is None:
                await _send_error(ws, {"code": "invalid_data", "type": msg.type})
            elif msg.type == WsEventType.JOIN_ROOM:
                manager.join(connection_id, conversation_id)
            else:
                manager.leave(connection_id, conversation_id)

        elif msg.type == WsEventType.TYPING:
            conversation_id = _conversation_id(msg.data)
            if conversation_id is None:
                await _send_error(ws, {"code": "invalid_data", "type": msg.type})
                continue
            await manager.broadcast_to_room(
                conversation_id,
                WsEventType.TYPING,
                {
                    "conversationId": conversation_id,
                    "userId": user_id,
                    "userName": user_name,
                    "isTyping": bool(msg.data.get("isTyping")),
                },
                exclude=connection_id,
            )

        else:
            await _send_error(ws, {"code": "unknown_type", "type": msg.type})


def _conversation_id(data: dict[str, Any]) -> int | None:
    try:
        return int(data["conversationId"])
    except (KeyError, TypeError, ValueError):
        return None


async def _send_error(ws: WebSocket, data: dict[str, Any]) -> None:
    await ws.send_text(WsEnvelope(type=WsEventType.ERROR.value, data=data).model_dump_json())
