"""Ordered, de-duplicated message buffer for the open conversation."""
from __future__ import annotations

import logging

from chat_sync.application.ports.api import ChatApi
from chat_sync.config import settings
from chat_sync.domain.entities.message import Message

logger = logging.getLogger(__name__)


class MessageStream:
    """Buffer kept oldest-to-newest.

    Older pages are prepended as whole blocks and live messages are appended,
    so order is append order. An incoming message whose id is already
    buffered is discarded; the first copy keeps its position.
    """

    def __init__(self, api: ChatApi, *, page_size: int | None = None) -> None:
        self._api = api
        self._page_size = page_size or settings.MESSAGE_PAGE_SIZE
        self._conversation_id: int | None = None
        self._messages: list[Message] = []
        self._ids: set[int] = set()
        self._page = 0
        self._has_more = False
        self._loading = False
        # Bumped on every switch so a fetch for a previous conversation is discarded.
        self._generation = 0

    @property
    def conversation_id(self) -> int | None:
        return self._conversation_id

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def has_more(self) -> bool:
        return self._has_more

    @property
    def loading(self) -> bool:
        return self._loading

    def clear(self) -> None:
        self._generation += 1
        self._conversation_id = None
        self._messages = []
        self._ids = set()
        self._page = 0
        self._has_more = False
        self._loading = False

    async def load_initial(self, conversation_id: int) -> None:
        self.clear()
        self._conversation_id = conversation_id
        generation = self._generation
        self._loading = True
        try:
            page = await self._api.list_messages(
                conversation_id, page=1, limit=self._page_size,
            )
        finally:
            if generation == self._generation:
                self._loading = False

        if generation != self._generation:
            logger.debug("Discarding stale initial page for conversation %s", conversation_id)
            return

        # Pages arrive newest first.
        fresh = list(reversed(page.items))
        fresh_ids = {m.id for m in fresh}
        # Live messages may have been appended while the fetch was pending.
        live = [m for m in self._messages if m.id not in fresh_ids]
        self._messages = []
        self._ids = set()
        for message in fresh + live:
            if message.id not in self._ids:
                self._push(message)
        self._page = 1
        self._has_more = len(page.items) == self._page_size

    async def load_older(self) -> None:
        if self._conversation_id is None or not self._has_more or self._loading:
            return

        conversation_id = self._conversation_id
        generation = self._generation
        next_page = self._page + 1
        self._loading = True
        try:
            page = await self._api.list_messages(
                conversation_id, page=next_page, limit=self._page_size,
            )
        finally:
            if generation == self._generation:
                self._loading = False

        if generation != self._generation:
            return

        older = [m for m in reversed(page.items) if m.id not in self._ids]
        self._messages[:0] = older
        self._ids.update(m.id for m in older)
        self._page = next_page
        self._has_more = len(page.items) == self._page_size
        logger.debug(
            "Backfilled %d messages into conversation %s (page %d)",
            len(older), conversation_id, next_page,
        )

    def append_live(self, message: Message) -> bool:
        """Append a sent or received message unless already buffered."""
        if message.conversation_id != self._conversation_id:
            logger.debug(
                "Ignoring message %s for conversation %s (open: %s)",
                message.id, message.conversation_id, self._conversation_id,
            )
            return False
        if message.id in self._ids:
            return False
        self._push(message)
        return True

    async def resync(self) -> int:
        """Append messages from the newest page that are not yet buffered."""
        if self._conversation_id is None:
            return 0
        conversation_id = self._conversation_id
        generation = self._generation
        page = await self._api.list_messages(
            conversation_id, page=1, limit=self._page_size,
        )
        if generation != self._generation:
            return 0
        added = 0
        for message in reversed(page.items):
            if self.append_live(message):
                added += 1
        if added:
            logger.info("Resync recovered %d messages in conversation %s", added, conversation_id)
        return added

    def _push(self, message: Message) -> None:
        self._messages.append(message)
        self._ids.add(message.id)
