"""Lifecycle of the single transport handle owned by a session."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from chat_client.application.exceptions import LifecycleError, NotConnected
from chat_client.application.ports.transport import (
    RealtimeTransport,
    TransportCallbacks,
    TransportFactory,
)
from chat_client.domain.entities.session import Session
from chat_client.domain.value_objects.enums import ConnectionState, MessageType

logger = logging.getLogger(__name__)

OnMessage = Callable[[MessageType, dict[str, Any]], None]


class _Binding:
    """Callback slots for one handle. Detaching silences the handle for good."""

    def __init__(self, manager: ConnectionManager, epoch: int) -> None:
        self._manager = manager
        self.epoch = epoch
        self.attached = True

    def callbacks(self) -> TransportCallbacks:
        return TransportCallbacks(
            on_ready=self._on_ready,
            on_closed=self._on_closed,
            on_message=self._on_message,
        )

    def detach(self) -> None:
        self.attached = False

    def _on_ready(self) -> None:
        if self.attached:
            self._manager._handle_ready()

    def _on_closed(self) -> None:
        if self.attached:
            self._manager._handle_closed()

    def _on_message(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        if self.attached:
            self._manager._handle_message(message_type, payload)
        else:
            logger.debug("Dropped %s from detached transport handle", message_type)


class ConnectionManager:
    """Owns one transport handle at a time and mirrors its state into the session."""

    def __init__(
        self,
        session: Session,
        factory: TransportFactory,
        on_message: OnMessage,
        on_state_change: Callable[[ConnectionState], None] | None = None,
    ) -> None:
        self._session = session
        self._factory = factory
        self._on_message = on_message
        self._on_state_change = on_state_change
        self._transport: RealtimeTransport | None = None
        self._binding: _Binding | None = None
        self._releasing: asyncio.Future[None] | None = None

    @property
    def transport(self) -> RealtimeTransport | None:
        return self._transport

    @property
    def is_connected(self) -> bool:
        return self._transport is not None and self._session.is_connected

    def initialize(self) -> RealtimeTransport:
        if self._transport is not None:
            raise LifecycleError(
                f"Transport already initialized for epoch {self._session.epoch}"
            )
        if self._releasing is not None:
            raise LifecycleError("Previous transport handle is still being released")
        binding = _Binding(self, self._session.epoch)
        self._binding = binding
        self._transport = self._factory(binding.callbacks())
        logger.debug("Transport handle created (epoch=%d)", binding.epoch)
        return self._transport

    async def teardown(self) -> None:
        transport, binding = self._transport, self._binding
        self._transport = None
        self._binding = None
        if binding is not None:
            binding.detach()
        # No closed notification: a teardown is not a transport failure.
        self._session.state = ConnectionState.DISCONNECTED
        if transport is None:
            # Another teardown may still be releasing the previous handle.
            if self._releasing is not None:
                await self._releasing
            return
        task = asyncio.ensure_future(transport.teardown())
        self._releasing = task
        try:
            await task
        finally:
            if self._releasing is task:
                self._releasing = None
        logger.debug("Transport handle released")

    def require_connected(self) -> RealtimeTransport:
        if self._transport is None or not self._session.is_connected:
            raise NotConnected("Not connected to chat server")
        return self._transport

    def send(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        self.require_connected().send_message(message_type, payload)

    def _handle_ready(self) -> None:
        logger.info("Connected to chat server")
        self._set_state(ConnectionState.CONNECTED)

    def _handle_closed(self) -> None:
        logger.info("Disconnected from chat server")
        self._set_state(ConnectionState.DISCONNECTED)

    def _handle_message(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        self._on_message(message_type, payload)

    def _set_state(self, state: ConnectionState) -> None:
        if self._session.state == state:
            return
        self._session.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)
