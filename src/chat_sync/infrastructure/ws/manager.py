"""In-process room registry for the development relay."""
from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import WebSocket

from chat_sync.infrastructure.ws.protocol import WsEnvelope

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Tracks relay connections, the user behind each, and joined rooms."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._users: dict[int, set[str]] = {}
        self._rooms: dict[int, set[str]] = {}

    async def connect(
        self, ws: WebSocket, connection_id: str, user_id: int | None = None,
    ) -> None:
        await ws.accept()
        self._connections[connection_id] = ws
        if user_id:
            self._users.setdefault(user_id, set()).add(connection_id)
        logger.debug(
            "WS connected: %s user=%s (total=%d)",
            connection_id, user_id, len(self._connections),
        )

    def disconnect(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        for registry in (self._users, self._rooms):
            for key in [k for k, members in registry.items() if connection_id in members]:
                registry[key].discard(connection_id)
                if not registry[key]:
                    del registry[key]
        logger.debug("WS disconnected: %s", connection_id)

    def join(self, connection_id: str, conversation_id: int) -> None:
        self._rooms.setdefault(conversation_id, set()).add(connection_id)

    def leave(self, connection_id: str, conversation_id: int) -> None:
        members = self._rooms.get(conversation_id)
        if members:
            members.discard(connection_id)
            if not members:
                del self._rooms[conversation_id]

    async def broadcast_to_room(
        self,
        conversation_id: int | None,
        event_type: str,
        data: dict[str, Any],
        *,
        user_ids: Iterable[int] = (),
        exclude: str | None = None,
    ) -> int:
        """Send one envelope to a room and to every connection of ``user_ids``.

        Each connection receives the envelope at most once. Returns deliveries.
        """
        targets: set[str] = set()
        if conversation_id is not None:
            targets.update(self._rooms.get(conversation_id, ()))
        for user_id in user_ids:
            targets.update(self._users.get(user_id, ()))
        targets.discard(exclude)

        raw = WsEnvelope(type=str(event_type), data=data).model_dump_json()
        delivered = 0
        dead: list[str] = []
        for connection_id in sorted(targets):
            ws = self._connections.get(connection_id)
            if ws is None:
                continue
            try:
                await ws.send_text(raw)
                delivered += 1
            except Exception:
                dead.append(connection_id)
        for connection_id in dead:
            self.disconnect(connection_id)
        return delivered

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def room_count(self) -> int:
        return len(self._rooms)
