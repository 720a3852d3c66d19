from __future__ import annotations

import logging
from typing import Iterable

from chat_client.application.dto.payloads import SetTypingCommand
from chat_client.application.exceptions import NotConnected
from chat_client.application.ports.scheduler import Scheduler
from chat_client.domain.entities.session import Session
from chat_client.domain.value_objects.enums import MessageType
from chat_client.services.connection_manager import ConnectionManager
from chat_client.services.debounce import DebounceTimer

logger = logging.getLogger(__name__)


class TypingPresenceController:
    """Local typing signal with a quiet-window reset, plus the remote typing set.

    Every input change sends the current typing flag right away, then re-arms
    one delayed typing=false that fires after ``quiet_window`` seconds of no
    further input.
    """

    def __init__(
        self,
        session: Session,
        connection: ConnectionManager,
        scheduler: Scheduler,
        quiet_window: float,
    ) -> None:
        self._session = session
        self._connection = connection
        self._timer = DebounceTimer(scheduler, quiet_window)

    @property
    def users_typing(self) -> tuple[str, ...]:
        return self._session.users_typing

    @property
    def pending(self) -> bool:
        return self._timer.pending

    def on_local_input_change(self, text: str) -> None:
        self._session.draft = text
        if not self._session.in_room:
            return
        if not self._connection.is_connected:
            raise NotConnected("Disconnected from chat server")
        self.send_typing(bool(text.strip()))
        self._timer.arm(self._on_quiet)

    def on_remote_typing_update(self, nicknames: Iterable[str]) -> None:
        self._session.users_typing = tuple(nicknames)

    def send_typing(self, typing: bool) -> None:
        self._connection.send(
            MessageType.SET_TYPING_PRESENCE,
            SetTypingCommand(typing=typing).model_dump(),
        )

    def clear(self) -> None:
        self._timer.cancel()
        self._session.users_typing = ()
        self._session.draft = ""

    def _on_quiet(self) -> None:
        try:
            self.send_typing(False)
        except NotConnected:
            logger.debug("Skipped quiet-window typing reset: not connected")
