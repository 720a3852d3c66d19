"""Room create/join flow for the current session."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from chat_client.application.exceptions import InvalidInput, RoomOperationFailed
from chat_client.domain.entities.session import Room, Session
from chat_client.domain.value_objects.enums import RoomState
from chat_client.services.connection_manager import ConnectionManager

if TYPE_CHECKING:
    from chat_client.services.session_reset import SessionResetCoordinator

logger = logging.getLogger(__name__)


def _require_text(value: str, what: str) -> str:
    if not value or not value.strip():
        raise InvalidInput(f"{what} must not be empty")
    return value


class RoomController:
    """Issues create/join requests and tracks membership.

    Create and join share one pending slot. Each request remembers the
    session epoch it was issued in; a response arriving in a later epoch is
    dropped without touching the session.
    """

    def __init__(
        self,
        session: Session,
        connection: ConnectionManager,
        timeout: float | None = None,
    ) -> None:
        self._session = session
        self._connection = connection
        self._timeout = timeout
        self._resetter: SessionResetCoordinator | None = None

    def bind_resetter(self, resetter: SessionResetCoordinator) -> None:
        self._resetter = resetter

    @property
    def pending(self) -> bool:
        return self._session.room_state == RoomState.PENDING

    async def create_room(self, nickname: str) -> str | None:
        """Create a room and join it. Returns the room id, or None if rejected or stale."""
        transport = self._connection.require_connected()
        _require_text(nickname, "Nickname")
        return await self._run(
            "create",
            nickname,
            lambda: transport.create_room(nickname),
        )

    async def join_room(self, nickname: str, room_id: str) -> str | None:
        """Join an existing room. Returns the room id, or None if rejected or stale."""
        transport = self._connection.require_connected()
        _require_text(nickname, "Nickname")
        _require_text(room_id, "Room ID")

        async def _join() -> str:
            await transport.join_room(nickname, room_id)
            return room_id

        return await self._run("join", nickname, _join)

    async def leave_room(self) -> None:
        if self._resetter is None:
            raise RuntimeError("RoomController has no reset coordinator bound")
        await self._resetter.reset()

    async def _run(
        self,
        operation: str,
        nickname: str,
        request: Callable[[], Awaitable[str]],
    ) -> str | None:
        session = self._session
        if session.room_state != RoomState.NO_ROOM:
            logger.debug("Rejected %s: room state is %s", operation, session.room_state)
            return None

        epoch = session.epoch
        session.room_state = RoomState.PENDING
        try:
            room_id = await self._await(request())
        except asyncio.CancelledError:
            if session.epoch == epoch and session.room_state == RoomState.PENDING:
                session.room_state = RoomState.NO_ROOM
            logger.debug("Room %s cancelled (epoch=%d)", operation, epoch)
            raise
        except Exception as exc:
            if session.epoch != epoch:
                logger.debug("Discarded stale %s failure (epoch=%d)", operation, epoch)
                return None
            session.room_state = RoomState.NO_ROOM
            logger.warning("Room %s failed: %s", operation, exc)
            raise RoomOperationFailed(f"Room {operation} failed: {exc}") from exc

        if session.epoch != epoch:
            logger.debug("Discarded stale %s result (epoch=%d)", operation, epoch)
            return None

        session.room = Room(id=room_id)
        session.room_state = RoomState.IN_ROOM
        session.nickname = nickname
        logger.info("Room %s succeeded: room_id=%s nickname=%s", operation, room_id, nickname)
        return room_id

    async def _await(self, request: Awaitable[str]) -> str:
        if self._timeout is None:
            return await request
        try:
            return await asyncio.wait_for(request, self._timeout)
        except asyncio.TimeoutError as exc:
            raise RoomOperationFailed(f"timed out after {self._timeout}s") from exc
