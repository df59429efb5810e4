from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Friend:
    id: int
    user_id: int
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    avatar: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
