from __future__ import annotations

import logging

from chat_client.domain.entities.session import Session
from chat_client.services.connection_manager import ConnectionManager
from chat_client.services.typing_presence import TypingPresenceController

logger = logging.getLogger(__name__)


class SessionResetCoordinator:
    """Returns the whole session to its initial state on a fresh transport handle."""

    def __init__(
        self,
        session: Session,
        connection: ConnectionManager,
        typing: TypingPresenceController,
    ) -> None:
        self._session = session
        self._connection = connection
        self._typing = typing

    async def reset(self) -> None:
        session = self._session
        self._typing.clear()
        session.clear()
        session.epoch += 1
        epoch = session.epoch
        # The old handle must be fully released before its replacement exists.
        await self._connection.teardown()
        if session.epoch != epoch:
            logger.debug("Reset for epoch %d superseded by epoch %d", epoch, session.epoch)
            return
        self._connection.initialize()
        logger.info("Session reset (epoch=%d)", epoch)
