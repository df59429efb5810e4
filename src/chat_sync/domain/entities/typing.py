from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class TypingUser:
    """A remote participant currently shown as typing."""

    user_id: int
    user_name: str
    since: datetime
