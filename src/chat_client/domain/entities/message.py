from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from chat_client.domain.value_objects.enums import ChannelType, MessageType


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    channel_type: ChannelType
    sender_id: int
    sender_username: str
    content: str
    type: MessageType
    created_at: datetime
    recipient_id: int | None = None
    conversation_id: int | None = None
    metadata: Mapping[str, Any] | None = None

    @property
    def tournament_id(self) -> int | None:
        if self.metadata is None:
            return None
        return self.metadata.get("tournament_id")

    @property
    def tournament_name(self) -> str:
        if self.metadata is None:
            return ""
        return self.metadata.get("tournament_name") or ""
