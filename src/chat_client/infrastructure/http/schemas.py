"""Response bodies of the chat REST API."""
from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from chat_client.application.dto.events import ChatMessagePayload
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import ChannelType
from chat_client.domain.value_objects.ids import GLOBAL_CONVERSATION_ID


class _Response(BaseModel):
    model_config = ConfigDict(extra="ignore")


class BlockedUser(_Response):
    id: int
    username: str = ""


class BlockedUsersResponse(_Response):
    blocked_users: list[BlockedUser] = []


class MarkReadResponse(_Response):
    total_unread_count: int = Field(
        default=0, validation_alias=AliasChoices("total_unread_count", "totalUnreadCount"),
    )


class Participant(_Response):
    user_id: int


class ConversationRecord(_Response):
    id: int
    participants: list[Participant] = []

    def has_participant(self, user_id: int) -> bool:
        return any(p.user_id == user_id for p in self.participants)


class ConversationsResponse(_Response):
    conversations: list[dict[str, Any]] = []


class HistoryMessage(ChatMessagePayload):
    recipient_id: int | None = Field(default=None, validation_alias=AliasChoices("recipient_id", "recipientId"))
    conversation_id: int | None = Field(
        default=None, validation_alias=AliasChoices("conversation_id", "conversationId"),
    )

    def to_message(self, conversation_id: int) -> Message:
        channel = ChannelType.GLOBAL if conversation_id == GLOBAL_CONVERSATION_ID else ChannelType.PRIVATE
        return Message(
            id=self.id,
            channel_type=channel,
            sender_id=self.sender_id,
            sender_username=self.sender_username,
            content=self.content,
            type=self.message_type,
            created_at=self.created_at,
            recipient_id=self.recipient_id,
            conversation_id=self.conversation_id or conversation_id,
            metadata=self.metadata,
        )


class MessagesResponse(_Response):
    messages: list[HistoryMessage] = []
