from __future__ import annotations

from enum import StrEnum


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class RoomState(StrEnum):
    NO_ROOM = "no_room"
    PENDING = "pending"
    IN_ROOM = "in_room"


class UiView(StrEnum):
    AWAITING_CONNECTION = "awaiting_connection"
    ROOM_SELECTION = "room_selection"
    IN_ROOM_CHAT = "in_room_chat"


class MessageType(StrEnum):
    """Tags carried by inbound and outbound transport messages."""

    SEND_MESSAGE = "sendMessage"
    SET_TYPING_PRESENCE = "setTypingPresence"


class MessageKind(StrEnum):
    OWN = "own"
    OTHER = "other"
    SYSTEM = "system"
