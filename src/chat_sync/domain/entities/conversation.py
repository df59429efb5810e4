from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_sync.domain.entities.message import Message
from chat_sync.domain.value_objects.enums import ConversationType


@dataclass(frozen=True, slots=True)
class Member:
    user_id: int
    first_name: str = ""
    last_name: str = ""
    avatar: str | None = None
    email: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True, slots=True)
class Conversation:
    id: int
    name: str | None
    members: tuple[Member, ...]
    last_message: Message | None
    last_activity: datetime
    unread_count: int = 0
    type: ConversationType = ConversationType.PRIVATE

    @property
    def member_ids(self) -> frozenset[int]:
        return frozenset(m.user_id for m in self.members)
