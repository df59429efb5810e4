"""Local, recency-ordered projection of the user's conversations."""
from __future__ import annotations

import dataclasses
import logging

from chat_sync.application.ports.api import ChatApi
from chat_sync.config import settings
from chat_sync.domain.entities.conversation import Conversation
from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import ConversationType

logger = logging.getLogger(__name__)


class ConversationStore:
    """Conversation list with unread counters, newest activity first.

    The list is re-sorted (stable) after every mutation.
    """

    def __init__(
        self,
        api: ChatApi,
        local_user_id: int,
        *,
        page_size: int | None = None,
    ) -> None:
        self._api = api
        self._local_user_id = local_user_id
        self._page_size = page_size or settings.CONVERSATION_PAGE_SIZE
        self._conversations: list[Conversation] = []
        # Ids of messages already counted, so redelivery is a no-op.
        self._applied_ids: set[int] = set()

    @property
    def conversations(self) -> tuple[Conversation, ...]:
        return tuple(self._conversations)

    @property
    def total_unread(self) -> int:
        return sum(c.unread_count for c in self._conversations)

    def get(self, conversation_id: int) -> Conversation | None:
        for conversation in self._conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    async def load(self) -> None:
        """Replace the local list with the first page from the backend.

        Raises FetchError; the current list is kept when the fetch fails.
        """
        page = await self._api.list_conversations(page=1, limit=self._page_size)
        self._conversations = list(page.items)
        self._applied_ids.update(
            c.last_message.id for c in self._conversations if c.last_message is not None
        )
        self._sort()
        logger.debug("Loaded %d conversations", len(self._conversations))

    def apply_incoming_message(self, message: Message) -> Conversation | None:
        index = self._index_of(message.conversation_id)
        if index is None:
            # TODO: fetch metadata for conversations missing from the first page
            logger.debug(
                "Dropping message %s for unknown conversation %s",
                message.id, message.conversation_id,
            )
            return None

        current = self._conversations[index]
        if message.id in self._applied_ids:
            logger.debug("Message %s already applied", message.id)
            return current
        self._applied_ids.add(message.id)

        unread = current.unread_count
        if message.sender_id != self._local_user_id:
            unread += 1
        updated = dataclasses.replace(current, unread_count=unread)
        # A late delivery never moves the preview or recency backwards.
        if message.created_at >= current.last_activity:
            updated = dataclasses.replace(
                updated, last_message=message, last_activity=message.created_at,
            )
        self._conversations[index] = updated
        self._sort()
        return updated

    def mark_read(self, conversation_id: int) -> None:
        index = self._index_of(conversation_id)
        if index is None:
            return
        current = self._conversations[index]
        if current.unread_count:
            self._conversations[index] = dataclasses.replace(current, unread_count=0)

    def upsert(self, conversation: Conversation) -> None:
        index = self._index_of(conversation.id)
        if index is None:
            self._conversations.append(conversation)
        else:
            self._conversations[index] = conversation
        self._sort()

    def find_for_contact(self, user_id: int) -> Conversation | None:
        """Direct conversation with ``user_id``, else any one they are in."""
        fallback: Conversation | None = None
        for conversation in self._conversations:
            if user_id not in conversation.member_ids:
                continue
            if conversation.type == ConversationType.PRIVATE:
                return conversation
            if fallback is None:
                fallback = conversation
        return fallback

    def display_name(self, conversation: Conversation) -> str:
        """Group name, else the other member's full name."""
        if conversation.name:
            return conversation.name
        for member in conversation.members:
            if member.user_id != self._local_user_id and member.full_name:
                return member.full_name
        return "Unknown"

    def search(self, query: str) -> tuple[Conversation, ...]:
        needle = query.strip().lower()
        if not needle:
            return self.conversations
        return tuple(
            c for c in self._conversations
            if needle in self.display_name(c).lower()
            or any(needle in m.full_name.lower() for m in c.members)
        )

    def _index_of(self, conversation_id: int) -> int | None:
        for i, conversation in enumerate(self._conversations):
            if conversation.id == conversation_id:
                return i
        return None

    def _sort(self) -> None:
        self._conversations.sort(key=lambda c: c.last_activity, reverse=True)
