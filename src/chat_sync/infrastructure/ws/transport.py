"""Process-wide real-time connection: typed pub/sub over one WebSocket."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import aiohttp

from chat_sync.application.exceptions import TransportDisconnected
from chat_sync.config import settings
from chat_sync.domain.events.transport import Connected, Disconnected, TransportEvent
from chat_sync.domain.value_objects.enums import WsEventType
from chat_sync.infrastructure.ws import protocol

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class RealtimeTransport:
    """Implements application.ports.transport.Transport.

    Owns a single auto-reconnecting connection. Handlers are plain callables
    invoked on the event loop in registration order; rooms joined through
    this object are re-joined after every reconnect.
    """

    def __init__(
        self,
        url: str | None = None,
        *,
        token: str | None = None,
        reconnect_attempts: int | None = None,
        reconnect_delay: float | None = None,
        reconnect_delay_max: float | None = None,
        heartbeat: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._url = url or settings.REALTIME_URL
        self._token = settings.ACCESS_TOKEN if token is None else token
        self._attempts = (
            settings.RECONNECT_ATTEMPTS if reconnect_attempts is None else reconnect_attempts
        )
        self._delay = (
            settings.RECONNECT_DELAY_SECONDS if reconnect_delay is None else reconnect_delay
        )
        self._delay_max = (
            settings.RECONNECT_DELAY_MAX_SECONDS
            if reconnect_delay_max is None
            else reconnect_delay_max
        )
        self._heartbeat = settings.WS_HEARTBEAT_SECONDS if heartbeat is None else heartbeat
        self._session = session
        self._owns_session = session is None

        self._handlers: dict[type, list[Handler]] = {}
        self._rooms: set[int] = set()
        self._ws: Any = None
        self._outbox: asyncio.Queue[str] | None = None
        self._task: asyncio.Task[None] | None = None
        self._open = asyncio.Event()

    # -- pub/sub -------------------------------------------------------------

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        handlers = self._handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)

        def _teardown() -> None:
            self.unsubscribe(event_type, handler)

        return _teardown

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def dispatch(self, event: TransportEvent) -> None:
        for handler in list(self._handlers.get(type(event), ())):
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed for %s", handler, type(event).__name__)

    # -- rooms / emit --------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    @property
    def rooms(self) -> frozenset[int]:
        return frozenset(self._rooms)

    def join_room(self, conversation_id: int) -> None:
        if conversation_id in self._rooms:
            logger.warning("Room %s already joined", conversation_id)
            return
        self._rooms.add(conversation_id)
        self.emit(WsEventType.JOIN_ROOM, {"conversationId": conversation_id})

    def leave_room(self, conversation_id: int) -> None:
        if conversation_id not in self._rooms:
            logger.warning("Room %s was not joined", conversation_id)
            return
        self._rooms.discard(conversation_id)
        self.emit(WsEventType.LEAVE_ROOM, {"conversationId": conversation_id})

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        if not self.connected or self._outbox is None:
            logger.debug("Not connected, dropping %s", event_name)
            return
        self._outbox.put_nowait(protocol.encode(event_name, payload))

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._task = asyncio.create_task(self._run(), name="realtime-transport")
        logger.info("Realtime transport started (url=%s)", self._url)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None
        logger.info("Realtime transport stopped")

    async def wait_connected(self, timeout: float | None = None) -> None:
        """Block until the connection is open.

        Raises TransportDisconnected if the transport is not running, has
        given up reconnecting, or does not connect within ``timeout``.
        """
        if self.connected:
            return
        if self._task is None or self._task.done():
            raise TransportDisconnected("Realtime transport is not running")
        opened = asyncio.ensure_future(self._open.wait())
        try:
            await asyncio.wait(
                {opened, self._task}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            opened.cancel()
        if not self.connected:
            raise TransportDisconnected("Realtime transport did not connect")

    def _backoff(self, attempt: int) -> float:
        return min(self._delay * (2 ** (attempt - 1)), self._delay_max)

    async def _run(self) -> None:
        assert self._session is not None
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        attempt = 0
        ever_connected = False
        while True:
            reason = ""
            opened = False
            try:
                async with self._session.ws_connect(
                    self._url, heartbeat=self._heartbeat, headers=headers,
                ) as ws:
                    opened = True
                    attempt = 0
                    self._on_open(ws, reconnect=ever_connected)
                    ever_connected = True
                    reason = await self._pump(ws)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                reason = str(exc) or type(exc).__name__
                logger.warning("Realtime connection failed: %s", reason)
            finally:
                self._open.clear()
                self._ws = None
                self._outbox = None

            if opened:
                logger.info("Realtime connection closed: %s", reason or "closed")
                self.dispatch(Disconnected(reason=reason))

            attempt += 1
            if attempt > self._attempts:
                logger.error("Giving up after %d reconnect attempts", self._attempts)
                self.dispatch(Disconnected(reason="reconnect attempts exhausted"))
                return
            delay = self._backoff(attempt)
            logger.info("Reconnecting in %.1fs (attempt %d/%d)", delay, attempt, self._attempts)
            await asyncio.sleep(delay)

    def _on_open(self, ws: Any, *, reconnect: bool) -> None:
        self._ws = ws
        self._outbox = asyncio.Queue()
        self._open.set()
        logger.info("Realtime connection open (reconnect=%s)", reconnect)
        for conversation_id in sorted(self._rooms):
            self._outbox.put_nowait(
                protocol.encode(WsEventType.JOIN_ROOM, {"conversationId": conversation_id})
            )
        self.dispatch(Connected(reconnect=reconnect))

    async def _pump(self, ws: Any) -> str:
        assert self._outbox is not None
        writer = asyncio.create_task(self._write(ws, self._outbox), name="realtime-writer")
        try:
            while True:
                msg = await ws.receive()
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._handle_frame(msg.data)
                elif msg.type in (
                    aiohttp.WSMsgType.CLOSE,
                    aiohttp.WSMsgType.CLOSING,
                    aiohttp.WSMsgType.CLOSED,
                ):
                    return "server closed"
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    return f"error: {ws.exception()}"
        finally:
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

    async def _write(self, ws: Any, outbox: asyncio.Queue[str]) -> None:
        while True:
            frame = await outbox.get()
            try:
                await ws.send_str(frame)
            except (aiohttp.ClientError, ConnectionError) as exc:
                logger.warning("Dropping outbound frame, send failed: %s", exc)

    def _handle_frame(self, raw: str) -> None:
        try:
            event = protocol.decode(raw)
        except protocol.MalformedFrame as exc:
            logger.warning("Ignoring malformed frame: %s", exc)
            return
        if event is not None:
            self.dispatch(event)


_transport: RealtimeTransport | None = None


def get_transport() -> RealtimeTransport:
    global _transport  # noqa: PLW0603
    if _transport is None:
        _transport = RealtimeTransport()
    return _transport


def reset_transport() -> None:
    global _transport  # noqa: PLW0603
    _transport = None
