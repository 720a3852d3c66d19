"""Transport payload models."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from chat_client.domain.entities.message import ChatMessage


class ChatMessagePayload(BaseModel):
    """Server → Client chat message."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    user_nickname: str = Field(alias="userNickname")
    body: str
    timestamp: int
    is_system_message: bool = Field(default=False, alias="isSystemMessage")

    def to_entity(self) -> ChatMessage:
        return ChatMessage(
            user_nickname=self.user_nickname,
            body=self.body,
            timestamp=self.timestamp,
            is_system_message=self.is_system_message,
        )


class TypingPresencePayload(BaseModel):
    """Server → Client aggregated typing set."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    users_typing: list[str] = Field(default_factory=list, alias="usersTyping")


class SendMessageCommand(BaseModel):
    """Client → Server."""

    body: str


class SetTypingCommand(BaseModel):
    """Client → Server."""

    typing: bool
