from __future__ import annotations

import logging
from typing import Callable

from chat_client.application.dto.payloads import SendMessageCommand
from chat_client.application.exceptions import NotConnected
from chat_client.domain.entities.message import ChatMessage
from chat_client.domain.entities.session import Session
from chat_client.domain.value_objects.enums import MessageType
from chat_client.services.connection_manager import ConnectionManager
from chat_client.services.typing_presence import TypingPresenceController

logger = logging.getLogger(__name__)


def should_auto_scroll(users_typing: tuple[str, ...], appended: bool) -> bool:
    """Stay pinned to the bottom unless only the typing set changed while non-empty."""
    return not users_typing or appended


class MessageFeed:
    """Append-only message sequence for the current room."""

    def __init__(
        self,
        session: Session,
        connection: ConnectionManager,
        typing: TypingPresenceController,
        on_scroll: Callable[[], None] | None = None,
    ) -> None:
        self._session = session
        self._connection = connection
        self._typing = typing
        self._on_scroll = on_scroll
        self.scroll_requests = 0

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._session.messages)

    def append_incoming(self, message: ChatMessage) -> None:
        self._session.messages.append(message)
        self.after_change(appended=True)

    def after_change(self, *, appended: bool = False) -> bool:
        """Apply the auto-scroll policy; returns True when a scroll was requested."""
        if not should_auto_scroll(self._session.users_typing, appended):
            return False
        self.scroll_requests += 1
        if self._on_scroll is not None:
            self._on_scroll()
        return True

    def send_outgoing(self, body: str) -> bool:
        """Send a chat message. Returns False for a blank body, which is a no-op."""
        if not body.strip():
            return False
        if not self._session.in_room:
            raise NotConnected("Not in a room")
        self._connection.send(
            MessageType.SEND_MESSAGE,
            SendMessageCommand(body=body).model_dump(),
        )
        self._session.draft = ""
        # The debounce timer is left armed; a later typing=false is redundant but harmless.
        self._typing.send_typing(False)
        return True
