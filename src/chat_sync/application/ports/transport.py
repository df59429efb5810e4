from __future__ import annotations

from typing import Any, Callable, Protocol, TypeVar

from chat_sync.domain.events.transport import TransportEvent

E = TypeVar("E", bound=TransportEvent)

Handler = Callable[[E], None]


class Transport(Protocol):
    def subscribe(self, event_type: type[E], handler: Handler[E]) -> Callable[[], None]:
        """Register ``handler`` for ``event_type``; return a teardown callable."""
        ...

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None: ...

    def join_room(self, conversation_id: int) -> None: ...

    def leave_room(self, conversation_id: int) -> None: ...

    def emit(self, event_name: str, payload: dict[str, Any]) -> None: ...
