"""Shared test fixtures."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

import pytest

from chat_sync.application.dto.message import MediaUpload, SendMessageDTO, UploadFile
from chat_sync.application.dto.page import Page
from chat_sync.domain.entities.conversation import Conversation, Member
from chat_sync.domain.entities.friend import Friend
from chat_sync.domain.entities.message import Media, Message, Sender
from chat_sync.domain.value_objects.enums import ConversationType

LOCAL_USER_ID = 1
BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_message(
    message_id: int,
    *,
    conversation_id: int = 5,
    sender_id: int = 999,
    content: str = "hello",
    minute: int | None = None,
    media: tuple[Media, ...] = (),
) -> Message:
    return Message(
        id=message_id,
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        media=media,
        created_at=BASE_TIME + timedelta(minutes=message_id if minute is None else minute),
        sender=Sender(user_id=sender_id, first_name="User", last_name=str(sender_id)),
    )


def make_conversation(
    conversation_id: int = 5,
    *,
    member_ids: Sequence[int] = (LOCAL_USER_ID, 999),
    name: str | None = None,
    unread: int = 0,
    minute: int = 0,
    conversation_type: ConversationType = ConversationType.PRIVATE,
) -> Conversation:
    return Conversation(
        id=conversation_id,
        name=name,
        members=tuple(
            Member(user_id=uid, first_name="User", last_name=str(uid)) for uid in member_ids
        ),
        last_message=None,
        last_activity=BASE_TIME + timedelta(minutes=minute),
        unread_count=unread,
        type=conversation_type,
    )


@dataclass
class FakeChatApi:
    """In-memory ChatApi. Messages are stored oldest first per conversation."""

    conversations: list[Conversation] = field(default_factory=list)
    messages: dict[int, list[Message]] = field(default_factory=dict)
    friends: list[Friend] = field(default_factory=list)
    fail_with: Exception | None = None
    upload_fail_with: Exception | None = None
    # Called inside list_messages before the page is returned (simulates interleaving).
    on_list_messages: Callable[[int, int], Any] | None = None
    # Called with the created message before send_message returns.
    on_send_message: Callable[[Message], None] | None = None
    list_calls: list[tuple[int, int]] = field(default_factory=list)
    sent: list[SendMessageDTO] = field(default_factory=list)
    uploads: list[list[UploadFile]] = field(default_factory=list)
    next_message_id: int = 1000

    async def list_conversations(self, *, page: int = 1, limit: int = 20) -> Page[Conversation]:
        if self.fail_with:
            raise self.fail_with
        start = (page - 1) * limit
        return Page(items=self.conversations[start:start + limit], page=page, limit=limit)

    async def list_messages(
        self, conversation_id: int, *, page: int = 1, limit: int = 20
    ) -> Page[Message]:
        self.list_calls.append((conversation_id, page))
        if self.fail_with:
            raise self.fail_with
        newest_first = list(reversed(self.messages.get(conversation_id, [])))
        start = (page - 1) * limit
        items = newest_first[start:start + limit]
        if self.on_list_messages is not None:
            result = self.on_list_messages(conversation_id, page)
            if hasattr(result, "__await__"):
                await result
        return Page(items=items, page=page, limit=limit)

    async def send_message(self, dto: SendMessageDTO) -> Message:
        if self.fail_with:
            raise self.fail_with
        self.sent.append(dto)
        self.next_message_id += 1
        message = Message(
            id=self.next_message_id,
            conversation_id=dto.conversation_id,
            sender_id=LOCAL_USER_ID,
            content=dto.content,
            media=tuple(Media(url=m.url, media_type_id=m.media_type_id) for m in dto.media),
            created_at=BASE_TIME + timedelta(hours=1, minutes=self.next_message_id - 1000),
        )
        if self.on_send_message is not None:
            self.on_send_message(message)
        return message

    async def upload_media(self, files: Sequence[UploadFile]) -> list[MediaUpload]:
        if self.upload_fail_with:
            raise self.upload_fail_with
        self.uploads.append(list(files))
        return [MediaUpload(url=f"https://cdn.test/{f.filename}", media_type_id=1) for f in files]

    async def list_friends(self, *, search: str | None = None) -> list[Friend]:
        if search:
            return [f for f in self.friends if search.lower() in f.full_name.lower()]
        return list(self.friends)


@dataclass
class FakeTransport:
    """Records emits/rooms and dispatches events synchronously."""

    handlers: dict[type, list[Callable[[Any], None]]] = field(default_factory=dict)
    emitted: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    rooms: set[int] = field(default_factory=set)

    def subscribe(self, event_type: type, handler: Callable[[Any], None]) -> Callable[[], None]:
        handlers = self.handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: type, handler: Callable[[Any], None]) -> None:
        handlers = self.handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def join_room(self, conversation_id: int) -> None:
        self.rooms.add(conversation_id)
        self.emit("join-room", {"conversationId": conversation_id})

    def leave_room(self, conversation_id: int) -> None:
        self.rooms.discard(conversation_id)
        self.emit("leave-room", {"conversationId": conversation_id})

    def emit(self, event_name: str, payload: dict[str, Any]) -> None:
        self.emitted.append((str(event_name), payload))

    def publish(self, event: Any) -> None:
        for handler in list(self.handlers.get(type(event), [])):
            handler(event)

    def handler_count(self, event_type: type) -> int:
        return len(self.handlers.get(event_type, []))

    def typing_signals(self) -> list[bool]:
        return [p["isTyping"] for name, p in self.emitted if name == "typing"]


class FakeTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers fire only when ``advance`` passes their due time."""

    def __init__(self) -> None:
        self.elapsed = 0.0
        self._timers: list[FakeTimer] = []

    def now(self) -> datetime:
        return BASE_TIME + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.elapsed + delay, callback)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.elapsed + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.elapsed = timer.due
            timer.callback()
        self.elapsed = target

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)


@pytest.fixture
def api() -> FakeChatApi:
    return FakeChatApi()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
