"""Typing indicators: remote presence with expiry, and local outbound debounce."""
from __future__ import annotations

import logging
from typing import Callable

from chat_sync.application.ports.scheduler import Scheduler, TimerHandle
from chat_sync.application.ports.transport import Transport
from chat_sync.config import settings
from chat_sync.domain.entities.typing import TypingUser
from chat_sync.domain.events.transport import TypingChanged
from chat_sync.domain.value_objects.enums import WsEventType

logger = logging.getLogger(__name__)


class TypingTracker:
    """Remote users currently typing in the active conversation.

    Per user: Idle -> Typing on a start signal, Typing -> Idle on a stop
    signal or when the expiry timer fires. Every start signal re-arms the
    timer, so a dropped stop signal clears after ``expiry`` seconds.
    """

    def __init__(
        self,
        local_user_id: int,
        scheduler: Scheduler,
        *,
        expiry: float | None = None,
        on_change: Callable[[tuple[TypingUser, ...]], None] | None = None,
    ) -> None:
        self._local_user_id = local_user_id
        self._scheduler = scheduler
        self._expiry = settings.TYPING_EXPIRY_SECONDS if expiry is None else expiry
        self._on_change = on_change
        self._conversation_id: int | None = None
        self._typing: dict[int, TypingUser] = {}
        self._timers: dict[int, TimerHandle] = {}

    @property
    def conversation_id(self) -> int | None:
        return self._conversation_id

    @property
    def typing_users(self) -> tuple[TypingUser, ...]:
        return tuple(self._typing.values())

    def is_typing(self, user_id: int) -> bool:
        return user_id in self._typing

    def activate(self, conversation_id: int) -> None:
        self.deactivate()
        self._conversation_id = conversation_id

    def deactivate(self) -> None:
        for user_id in list(self._timers):
            self._disarm(user_id)
        self._conversation_id = None
        if self._typing:
            self._typing.clear()
            self._notify()

    def handle(self, event: TypingChanged) -> None:
        if event.user_id == self._local_user_id:
            return
        if self._conversation_id is None or event.conversation_id != self._conversation_id:
            return

        if event.is_typing:
            self._start(event.user_id, event.user_name)
        else:
            self.clear_user(event.user_id)

    def clear_user(self, user_id: int) -> None:
        self._disarm(user_id)
        if self._typing.pop(user_id, None) is not None:
            self._notify()

    def _start(self, user_id: int, user_name: str) -> None:
        changed = user_id not in self._typing
        if changed:
            self._typing[user_id] = TypingUser(
                user_id=user_id, user_name=user_name, since=self._scheduler.now(),
            )
        self._arm(user_id)
        if changed:
            self._notify()

    def _arm(self, user_id: int) -> None:
        self._disarm(user_id)

        def _expire() -> None:
            self._timers.pop(user_id, None)
            if self._typing.pop(user_id, None) is not None:
                logger.debug("Typing indicator for user %s expired", user_id)
                self._notify()

        self._timers[user_id] = self._scheduler.call_later(self._expiry, _expire)

    def _disarm(self, user_id: int) -> None:
        timer = self._timers.pop(user_id, None)
        if timer is not None:
            timer.cancel()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.typing_users)


class TypingSignaller:
    """Local outbound typing signal.

    Start fires on the first non-empty keystroke after idle, stop fires after
    ``idle`` seconds without keystrokes, after a send, and on teardown.
    """

    def __init__(
        self,
        transport: Transport,
        scheduler: Scheduler,
        *,
        idle: float | None = None,
    ) -> None:
        self._transport = transport
        self._scheduler = scheduler
        self._idle = settings.TYPING_IDLE_SECONDS if idle is None else idle
        self._conversation_id: int | None = None
        self._timer: TimerHandle | None = None

    @property
    def typing(self) -> bool:
        return self._conversation_id is not None

    def keystroke(self, conversation_id: int, text: str) -> None:
        if self._conversation_id is not None and self._conversation_id != conversation_id:
            self.stop()
        if text and self._conversation_id is None:
            self._conversation_id = conversation_id
            self._emit(conversation_id, True)
        if self._conversation_id is not None:
            self._rearm()

    def stop(self) -> None:
        self._cancel_timer()
        if self._conversation_id is not None:
            conversation_id, self._conversation_id = self._conversation_id, None
            self._emit(conversation_id, False)

    def _rearm(self) -> None:
        self._cancel_timer()
        self._timer = self._scheduler.call_later(self._idle, self._on_idle)

    def _on_idle(self) -> None:
        self._timer = None
        self.stop()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _emit(self, conversation_id: int, is_typing: bool) -> None:
        self._transport.emit(
            WsEventType.TYPING,
            {"conversationId": conversation_id, "isTyping": is_typing},
        )
