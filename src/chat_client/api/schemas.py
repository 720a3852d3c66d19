from __future__ import annotations

from pydantic import BaseModel

from chat_client.application.exceptions import AppError
from chat_client.domain.entities.message import ChatMessage
from chat_client.domain.value_objects.enums import ConnectionState, MessageKind, UiView


class MessageView(BaseModel):
    user_nickname: str
    body: str
    timestamp: int
    kind: MessageKind

    @classmethod
    def from_entity(cls, message: ChatMessage, local_nickname: str) -> MessageView:
        return cls(
            user_nickname=message.user_nickname,
            body=message.body,
            timestamp=message.timestamp,
            kind=message.kind_for(local_nickname),
        )


class ErrorView(BaseModel):
    code: str
    detail: str
    retryable: bool = False

    @classmethod
    def from_error(cls, exc: AppError) -> ErrorView:
        return cls(code=exc.code, detail=exc.detail, retryable=exc.retryable)


class SessionView(BaseModel):
    """Snapshot handed to the presentation layer after every change."""

    status: ConnectionState
    view: UiView
    room_id: str
    nickname: str
    join_room_id: str
    draft: str
    messages: list[MessageView] = []
    users_typing: list[str] = []
    error: ErrorView | None = None

    @property
    def someone_typing(self) -> bool:
        return bool(self.users_typing)

    @property
    def can_create(self) -> bool:
        return self.status == ConnectionState.CONNECTED and bool(self.nickname.strip())

    @property
    def can_join(self) -> bool:
        return self.can_create and bool(self.join_room_id.strip())

    @property
    def can_send(self) -> bool:
        return bool(self.draft.strip())
