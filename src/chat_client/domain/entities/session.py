from __future__ import annotations

from dataclasses import dataclass, field

from chat_client.domain.entities.message import ChatMessage
from chat_client.domain.value_objects.enums import ConnectionState, RoomState, UiView


@dataclass(frozen=True, slots=True)
class Room:
    id: str


@dataclass(slots=True)
class Session:
    """Mutable client state shared by the session components.

    Owned by the event-loop thread; every field except ``epoch`` returns to
    its default on reset.
    """

    state: ConnectionState = ConnectionState.DISCONNECTED
    epoch: int = 0
    room: Room | None = None
    room_state: RoomState = RoomState.NO_ROOM
    nickname: str = ""
    join_room_id: str = ""
    draft: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    users_typing: tuple[str, ...] = ()

    @property
    def is_connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED

    @property
    def in_room(self) -> bool:
        return self.room is not None and self.room_state == RoomState.IN_ROOM

    @property
    def view(self) -> UiView:
        if not self.is_connected:
            return UiView.AWAITING_CONNECTION
        if self.in_room:
            return UiView.IN_ROOM_CHAT
        return UiView.ROOM_SELECTION

    def clear(self) -> None:
        self.room = None
        self.room_state = RoomState.NO_ROOM
        self.nickname = ""
        self.join_room_id = ""
        self.draft = ""
        self.messages = []
        self.users_typing = ()
