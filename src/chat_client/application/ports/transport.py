from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol

from chat_client.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class TransportCallbacks:
    """The three callback slots a transport handle delivers events into."""

    on_ready: Callable[[], None]
    on_closed: Callable[[], None]
    on_message: Callable[[MessageType, dict[str, Any]], None]


class RealtimeTransport(Protocol):
    async def create_room(self, nickname: str) -> str: ...
    async def join_room(self, nickname: str, room_id: str) -> None: ...
    def send_message(self, message_type: MessageType, payload: dict[str, Any]) -> None: ...
    async def teardown(self) -> None: ...


TransportFactory = Callable[[TransportCallbacks], RealtimeTransport]
