from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError

from chat_client.api.schemas import ErrorView, MessageView, SessionView
from chat_client.application.dto.payloads import ChatMessagePayload, TypingPresencePayload
from chat_client.application.exceptions import AppError, TransportClosed
from chat_client.application.ports.scheduler import LoopScheduler, Scheduler
from chat_client.application.ports.transport import TransportFactory
from chat_client.config import settings
from chat_client.domain.entities.session import Session
from chat_client.domain.value_objects.enums import ConnectionState, MessageType
from chat_client.services.connection_manager import ConnectionManager
from chat_client.services.message_feed import MessageFeed
from chat_client.services.room_controller import RoomController
from chat_client.services.session_reset import SessionResetCoordinator
from chat_client.services.typing_presence import TypingPresenceController

logger = logging.getLogger(__name__)

ViewListener = Callable[[SessionView], None]


class ChatSession:
    """Application context for one chat client.

    Owns the session state and its components, routes transport events,
    and turns every user intent into a view update. Errors raised by the
    components are caught here and exposed on ``SessionView.error``.
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        *,
        scheduler: Scheduler,
        quiet_window: float,
        room_timeout: float | None = None,
        on_scroll: Callable[[], None] | None = None,
    ) -> None:
        self.session = Session()
        self._listeners: list[ViewListener] = []
        self._error: ErrorView | None = None

        self.connection = ConnectionManager(
            self.session,
            transport_factory,
            on_message=self._dispatch,
            on_state_change=self._on_state_change,
        )
        self.typing = TypingPresenceController(
            self.session, self.connection, scheduler, quiet_window,
        )
        self.feed = MessageFeed(self.session, self.connection, self.typing, on_scroll)
        self.rooms = RoomController(self.session, self.connection, room_timeout)
        self.resetter = SessionResetCoordinator(self.session, self.connection, self.typing)
        self.rooms.bind_resetter(self.resetter)

    async def __aenter__(self) -> ChatSession:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def start(self) -> None:
        self.connection.initialize()
        self._publish()

    async def close(self) -> None:
        self.typing.clear()
        await self.connection.teardown()

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def view(self) -> SessionView:
        s = self.session
        return SessionView(
            status=s.state,
            view=s.view,
            room_id=s.room.id if s.room else "",
            nickname=s.nickname,
            join_room_id=s.join_room_id,
            draft=s.draft,
            messages=[MessageView.from_entity(m, s.nickname) for m in s.messages],
            users_typing=list(s.users_typing),
            error=self._error,
        )

    def set_nickname(self, nickname: str) -> None:
        self.session.nickname = nickname
        self._publish()

    def set_join_room_id(self, room_id: str) -> None:
        self.session.join_room_id = room_id
        self._publish()

    async def create_room(self) -> str | None:
        try:
            room_id = await self.rooms.create_room(self.session.nickname)
        except AppError as exc:
            self._fail(exc)
            return None
        self._succeed()
        return room_id

    async def join_room(self) -> str | None:
        try:
            room_id = await self.rooms.join_room(self.session.nickname, self.session.join_room_id)
        except AppError as exc:
            self._fail(exc)
            return None
        self._succeed()
        return room_id

    async def leave_room(self) -> None:
        try:
            await self.rooms.leave_room()
        except AppError as exc:
            self._fail(exc)
            return
        self._error = None
        self._publish()

    def input_changed(self, text: str) -> None:
        try:
            self.typing.on_local_input_change(text)
        except AppError as exc:
            self._fail(exc)
            return
        self._publish()

    def send(self) -> bool:
        try:
            sent = self.feed.send_outgoing(self.session.draft)
        except AppError as exc:
            self._fail(exc)
            return False
        if sent:
            self._succeed()
        return sent

    def _dispatch(self, message_type: MessageType, payload: dict[str, Any]) -> None:
        try:
            if message_type == MessageType.SEND_MESSAGE:
                message = ChatMessagePayload.model_validate(payload).to_entity()
                self.feed.append_incoming(message)
            elif message_type == MessageType.SET_TYPING_PRESENCE:
                update = TypingPresencePayload.model_validate(payload)
                self.typing.on_remote_typing_update(update.users_typing)
                self.feed.after_change(appended=False)
            else:
                logger.debug("Ignored transport message type=%s", message_type)
                return
        except ValidationError:
            logger.warning("Dropped invalid %s payload", message_type, exc_info=True)
            return
        self._publish()

    def _on_state_change(self, state: ConnectionState) -> None:
        if state == ConnectionState.DISCONNECTED:
            self._error = ErrorView.from_error(
                TransportClosed("Disconnected from chat server; leave the room to reconnect")
            )
        else:
            self._error = None
        self._publish()

    def _fail(self, exc: AppError) -> None:
        logger.info("%s: %s", exc.code, exc.detail)
        self._error = ErrorView.from_error(exc)
        self._publish()

    def _succeed(self) -> None:
        if self.session.is_connected:
            self._error = None
        self._publish()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.view()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("View listener failed")


def create_session(
    transport_factory: TransportFactory,
    *,
    scheduler: Scheduler | None = None,
    on_scroll: Callable[[], None] | None = None,
) -> ChatSession:
    return ChatSession(
        transport_factory,
        scheduler=scheduler or LoopScheduler(),
        quiet_window=settings.typing_quiet_window_seconds,
        room_timeout=settings.ROOM_OPERATION_TIMEOUT,
        on_scroll=on_scroll,
    )
