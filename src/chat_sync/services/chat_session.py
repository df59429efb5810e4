"""Chat session: wires store, stream and typing state to the transport.

One session per signed-in user. The conversation list is kept current by a
global listener registered in ``start``; the open conversation gets its own
handlers, registered on select and removed on close, so the two never
double-handle an event.

Switching conversations is strictly sequenced: stop local typing, leave the
room, drop the active handlers, stop typing timers, clear the buffer, and only
then join and load the next conversation.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from chat_sync.application.dto.message import SendMessageDTO, UploadFile
from chat_sync.application.exceptions import FetchError
from chat_sync.application.ports.api import ChatApi
from chat_sync.application.ports.scheduler import LoopScheduler, Scheduler
from chat_sync.application.ports.transport import Transport
from chat_sync.config import settings
from chat_sync.domain.entities.friend import Friend
from chat_sync.domain.entities.message import Message
from chat_sync.domain.events.transport import (
    Connected,
    ConversationAdded,
    Disconnected,
    MessageReceived,
    TypingChanged,
)
from chat_sync.services.conversation_store import ConversationStore
from chat_sync.services.message_stream import MessageStream
from chat_sync.services.typing_tracker import TypingSignaller, TypingTracker

logger = logging.getLogger(__name__)


class ChatSession:
    def __init__(
        self,
        transport: Transport,
        api: ChatApi,
        local_user_id: int,
        *,
        scheduler: Scheduler | None = None,
        resync_on_reconnect: bool | None = None,
    ) -> None:
        self._transport = transport
        self._api = api
        self._local_user_id = local_user_id
        scheduler = scheduler or LoopScheduler()
        self._resync_on_reconnect = (
            settings.RESYNC_ON_RECONNECT if resync_on_reconnect is None else resync_on_reconnect
        )

        self.store = ConversationStore(api, local_user_id)
        self.stream = MessageStream(api)
        self.typing = TypingTracker(local_user_id, scheduler)
        self._signaller = TypingSignaller(transport, scheduler)

        self._global_teardown: list[Callable[[], None]] = []
        self._active_teardown: list[Callable[[], None]] = []
        self._active_id: int | None = None
        self._was_disconnected = False
        self._background: set[asyncio.Task[None]] = set()

        self.draft = ""
        self.attachments: list[UploadFile] = []

    @property
    def active_conversation_id(self) -> int | None:
        return self._active_id

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        if not self._global_teardown:
            subscribe = self._transport.subscribe
            self._global_teardown = [
                subscribe(MessageReceived, self._on_any_message),
                subscribe(ConversationAdded, self._on_conversation_added),
                subscribe(Connected, self._on_connected),
                subscribe(Disconnected, self._on_disconnected),
            ]
        try:
            await self.store.load()
        except FetchError as exc:
            logger.warning("Could not load conversations: %s", exc.detail)

    async def close(self) -> None:
        await self.close_conversation()
        for teardown in self._global_teardown:
            teardown()
        self._global_teardown = []
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # -- active conversation -------------------------------------------------

    async def select_conversation(self, conversation_id: int) -> None:
        if conversation_id == self._active_id:
            return
        await self.close_conversation()

        self._active_id = conversation_id
        self._transport.join_room(conversation_id)
        subscribe = self._transport.subscribe
        self._active_teardown = [
            subscribe(MessageReceived, self._on_active_message),
            subscribe(TypingChanged, self.typing.handle),
        ]
        self.typing.activate(conversation_id)
        self.store.mark_read(conversation_id)
        await self.stream.load_initial(conversation_id)

    async def close_conversation(self) -> None:
        if self._active_id is None:
            return
        self._signaller.stop()
        self._transport.leave_room(self._active_id)
        for teardown in self._active_teardown:
            teardown()
        self._active_teardown = []
        self.typing.deactivate()
        self.stream.clear()
        self.draft = ""
        self.attachments = []
        self._active_id = None

    async def load_older(self) -> None:
        await self.stream.load_older()

    # -- compose -------------------------------------------------------------

    def update_draft(self, text: str) -> None:
        self.draft = text
        if self._active_id is not None:
            self._signaller.keystroke(self._active_id, text)

    def attach(self, file: UploadFile) -> None:
        self.attachments.append(file)

    def detach(self, index: int) -> None:
        del self.attachments[index]

    async def send(self) -> Message | None:
        """Upload attachments and send the draft.

        The draft and attachments are cleared only on success, so a failed
        send (UploadError / FetchError) can be retried as is.
        """
        if self._active_id is None:
            return None
        content = self.draft.strip()
        if not content and not self.attachments:
            return None

        conversation_id = self._active_id
        media = ()
        if self.attachments:
            media = tuple(await self._api.upload_media(list(self.attachments)))
        message = await self._api.send_message(
            SendMessageDTO(conversation_id=conversation_id, content=content, media=media)
        )

        self.stream.append_live(message)
        self.store.apply_incoming_message(message)
        if self._active_id == conversation_id:
            self.draft = ""
            self.attachments = []
            self._signaller.stop()
        return message

    # -- friends -------------------------------------------------------------

    async def list_friends(self, search: str | None = None) -> list[Friend]:
        return await self._api.list_friends(search=search)

    async def open_with_friend(self, friend: Friend) -> bool:
        conversation = self.store.find_for_contact(friend.user_id)
        if conversation is None:
            logger.warning("No conversation found for friend %s", friend.user_id)
            return False
        await self.select_conversation(conversation.id)
        return True

    # -- transport handlers --------------------------------------------------

    def _on_any_message(self, event: MessageReceived) -> None:
        message = event.message
        self.store.apply_incoming_message(message)
        if message.conversation_id == self._active_id:
            self.store.mark_read(message.conversation_id)

    def _on_active_message(self, event: MessageReceived) -> None:
        message = event.message
        if message.conversation_id != self._active_id:
            return
        self.stream.append_live(message)
        self.typing.clear_user(message.sender_id)

    def _on_conversation_added(self, event: ConversationAdded) -> None:
        self.store.upsert(event.conversation)

    def _on_disconnected(self, event: Disconnected) -> None:
        self._was_disconnected = True

    def _on_connected(self, event: Connected) -> None:
        if not (event.reconnect or self._was_disconnected):
            return
        self._was_disconnected = False
        if not self._resync_on_reconnect:
            return
        task = asyncio.create_task(self._resync(), name="chat-session-resync")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _resync(self) -> None:
        try:
            await self.store.load()
            if self._active_id is not None:
                await self.stream.resync()
                self.store.mark_read(self._active_id)
        except FetchError as exc:
            logger.warning("Resync after reconnect failed: %s", exc.detail)
