"""In-process realtime hub implementing the transport port."""
from __future__ import annotations

import asyncio
import logging
import secrets
import time
from typing import Any, Callable

from chat_client.application.dto.payloads import (
    ChatMessagePayload,
    SendMessageCommand,
    SetTypingCommand,
    TypingPresencePayload,
)
from chat_client.application.ports.transport import TransportCallbacks
from chat_client.config import settings
from chat_client.domain.value_objects.enums import MessageType

logger = logging.getLogger(__name__)


class HubError(Exception):
    pass


def _now_ms() -> int:
    return int(time.time() * 1000)


class LocalTransport:
    """One client connection to a LocalRealtimeHub."""

    def __init__(self, hub: LocalRealtimeHub, callbacks: TransportCallbacks) -> None:
        self._hub = hub
        self.callbacks = callbacks
        self.room_id: str | None = None
        self.nickname: str = ""
        self.closed = False

    async def create_room(self, nickname: str) -> str:
        return await self._hub.create_room(self, nickname)

    async def join_room(self, nickname: str, room_id: str) -> None:
        await self._hub.join_room(self, nickname, room_id)

    def send_message(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        if self.closed:
            logger.debug("Dropped %s on closed connection", message_type)
            return
        self._hub.handle(self, message_type, payload)

    async def teardown(self) -> None:
        self._hub.disconnect(self)


class LocalRealtimeHub:
    """Tracks connections per room and fans messages out to room members.

    Delivery is scheduled on the running loop so each connection sees events
    in send order, after the sending call has returned.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms) -> None:
        self._clock = clock
        self._connections: set[LocalTransport] = set()
        self._rooms: dict[str, set[LocalTransport]] = {}
        self._typing: dict[str, dict[LocalTransport, str]] = {}

    def connect(self, callbacks: TransportCallbacks) -> LocalTransport:
        """TransportFactory: open a connection and signal ready on the next loop turn."""
        transport = LocalTransport(self, callbacks)
        self._connections.add(transport)
        self._schedule(transport, callbacks.on_ready)
        logger.debug("Hub connected (total=%d)", len(self._connections))
        return transport

    def disconnect(self, transport: LocalTransport) -> None:
        if transport.closed:
            return
        transport.closed = True
        self._connections.discard(transport)
        room_id = transport.room_id
        if room_id is not None:
            self._rooms.get(room_id, set()).discard(transport)
            if self._typing.get(room_id, {}).pop(transport, None) is not None:
                self._broadcast_typing(room_id)
        logger.debug("Hub disconnected (total=%d)", len(self._connections))

    def drop(self, transport: LocalTransport) -> None:
        """Close a connection from the server side."""
        self.disconnect(transport)
        self._schedule(transport, transport.callbacks.on_closed, force=True)

    def members(self, room_id: str) -> list[str]:
        return sorted(t.nickname for t in self._rooms.get(room_id, set()))

    async def create_room(self, transport: LocalTransport, nickname: str) -> str:
        self._assert_open(transport)
        room_id = secrets.token_hex(settings.ROOM_ID_BYTES)
        self._rooms[room_id] = set()
        self._typing[room_id] = {}
        self._enter(transport, nickname, room_id)
        return room_id

    async def join_room(self, transport: LocalTransport, nickname: str, room_id: str) -> None:
        self._assert_open(transport)
        if room_id not in self._rooms:
            raise HubError(f"Room {room_id} not found")
        self._enter(transport, nickname, room_id)

    def handle(
        self,
        transport: LocalTransport,
        message_type: MessageType,
        payload: dict[str, Any],
    ) -> None:
        room_id = transport.room_id
        if room_id is None:
            logger.warning("Dropped %s from connection outside any room", message_type)
            return

        if message_type == MessageType.SEND_MESSAGE:
            command = SendMessageCommand.model_validate(payload)
            self._broadcast_chat(room_id, transport.nickname, command.body)
        elif message_type == MessageType.SET_TYPING_PRESENCE:
            command = SetTypingCommand.model_validate(payload)
            typing = self._typing.setdefault(room_id, {})
            if command.typing:
                typing[transport] = transport.nickname
            else:
                typing.pop(transport, None)
            self._broadcast_typing(room_id)
        else:
            logger.warning("Unknown message type: %s", message_type)

    def _enter(self, transport: LocalTransport, nickname: str, room_id: str) -> None:
        if transport.room_id is not None:
            raise HubError("Already in a room")
        transport.room_id = room_id
        transport.nickname = nickname
        self._rooms[room_id].add(transport)
        self._broadcast_chat(
            room_id,
            nickname,
            settings.SYSTEM_JOIN_TEMPLATE.format(nickname=nickname),
            system=True,
        )

    def _broadcast_chat(self, room_id: str, nickname: str, body: str, *, system: bool = False) -> None:
        message = ChatMessagePayload(
            user_nickname=nickname,
            body=body,
            timestamp=self._clock(),
            is_system_message=system,
        ).model_dump(by_alias=True)
        for member in self._rooms.get(room_id, set()):
            self._send(member, MessageType.SEND_MESSAGE, message)

    def _broadcast_typing(self, room_id: str) -> None:
        typing = self._typing.get(room_id, {})
        for member in self._rooms.get(room_id, set()):
            others = [name for conn, name in typing.items() if conn is not member]
            payload = TypingPresencePayload(users_typing=others).model_dump(by_alias=True)
            self._send(member, MessageType.SET_TYPING_PRESENCE, payload)

    def _send(self, member: LocalTransport, message_type: MessageType, data: dict[str, Any]) -> None:
        self._schedule(member, lambda: member.callbacks.on_message(message_type, data))

    def _schedule(self, transport: LocalTransport, fn: Callable[[], None], *, force: bool = False) -> None:
        def _deliver() -> None:
            if transport.closed and not force:
                return
            try:
                fn()
            except Exception:
                logger.exception("Error delivering hub event")

        asyncio.get_running_loop().call_soon(_deliver)

    @staticmethod
    def _assert_open(transport: LocalTransport) -> None:
        if transport.closed:
            raise HubError("Connection is closed")
