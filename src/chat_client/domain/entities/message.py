from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import MessageKind


@dataclass(frozen=True, slots=True)
class ChatMessage:
    user_nickname: str
    body: str
    timestamp: int
    is_system_message: bool = False

    def kind_for(self, local_nickname: str) -> MessageKind:
        """Classify relative to the local user.

        Nicknames are the only identity available, so two participants
        sharing a nickname both render as OWN.
        """
        if self.is_system_message:
            return MessageKind.SYSTEM
        if self.user_nickname == local_nickname:
            return MessageKind.OWN
        return MessageKind.OTHER
