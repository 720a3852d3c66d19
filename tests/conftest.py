"""Shared test fixtures."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from chat_client.app import ChatSession
from chat_client.application.ports.transport import TransportCallbacks
from chat_client.domain.entities.message import ChatMessage
from chat_client.domain.value_objects.enums import MessageType


def make_message(
    *,
    nickname: str = "Bob",
    body: str = "hello",
    timestamp: int = 1000,
    system: bool = False,
) -> dict[str, Any]:
    """Inbound chat payload as the transport delivers it."""
    return {
        "userNickname": nickname,
        "body": body,
        "timestamp": timestamp,
        "isSystemMessage": system,
    }


def make_entity(*, nickname: str = "Bob", body: str = "hello", timestamp: int = 1000) -> ChatMessage:
    return ChatMessage(user_nickname=nickname, body=body, timestamp=timestamp)


@dataclass
class FakeTransport:
    callbacks: TransportCallbacks
    room_id: str = "R1"
    error: Exception | None = None
    gate: asyncio.Event | None = None
    sent: list[tuple[MessageType, dict[str, Any]]] = field(default_factory=list)
    requests: list[tuple[str, ...]] = field(default_factory=list)
    torn_down: bool = False

    async def create_room(self, nickname: str) -> str:
        self.requests.append(("create", nickname))
        await self._respond()
        return self.room_id

    async def join_room(self, nickname: str, room_id: str) -> None:
        self.requests.append(("join", nickname, room_id))
        await self._respond()

    def send_message(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        self.sent.append((message_type, payload))

    async def teardown(self) -> None:
        self.torn_down = True

    async def _respond(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error

    # server-side helpers

    def ready(self) -> None:
        self.callbacks.on_ready()

    def close(self) -> None:
        self.callbacks.on_closed()

    def deliver(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        self.callbacks.on_message(message_type, payload)

    @property
    def typing_flags(self) -> list[bool]:
        return [p["typing"] for t, p in self.sent if t == MessageType.SET_TYPING_PRESENCE]

    @property
    def chat_bodies(self) -> list[str]:
        return [p["body"] for t, p in self.sent if t == MessageType.SEND_MESSAGE]


@dataclass
class FakeTransportFactory:
    created: list[FakeTransport] = field(default_factory=list)

    def __call__(self, callbacks: TransportCallbacks) -> FakeTransport:
        transport = FakeTransport(callbacks)
        self.created.append(transport)
        return transport

    @property
    def current(self) -> FakeTransport:
        return self.created[-1]


@dataclass
class _Timer:
    due_ms: int
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock in whole milliseconds; timers fire only on ``advance``."""

    def __init__(self) -> None:
        self.now_ms = 0
        self._timers: list[_Timer] = []
        self._seq = 0

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Timer:
        self._seq += 1
        timer = _Timer(self.now_ms + round(delay * 1000), self._seq, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, ms: int) -> None:
        target = self.now_ms + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.seq))
            self._timers.remove(timer)
            self.now_ms = timer.due_ms
            timer.callback()
        self._timers = [t for t in self._timers if not t.cancelled]
        self.now_ms = target


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def scrolls() -> list[int]:
    return []


@pytest.fixture
def chat(factory, scheduler, scrolls) -> ChatSession:
    session = ChatSession(
        factory,
        scheduler=scheduler,
        quiet_window=2.0,
        on_scroll=lambda: scrolls.append(1),
    )
    session.start()
    return session


async def enter_room(
    chat: ChatSession,
    factory: FakeTransportFactory,
    *,
    nickname: str = "Alice",
    room_id: str = "R1",
) -> None:
    """Connect the current handle and join ``room_id`` as ``nickname``."""
    factory.current.ready()
    chat.set_nickname(nickname)
    chat.set_join_room_id(room_id)
    assert await chat.join_room() == room_id
