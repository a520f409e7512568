"""Inbound transport events, one tagged variant per event kind.

``parse_event`` is the only place where raw transport payloads are read.
Everything downstream works with the typed variants below.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from chat_client.domain.entities.message import Message
from chat_client.domain.entities.notification import UserNotification
from chat_client.domain.entities.presence import OnlineUser
from chat_client.domain.value_objects.enums import ChannelType, MessageType
from chat_client.domain.value_objects.ids import GLOBAL_CONVERSATION_ID

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


def decode_metadata(raw: Any) -> dict[str, Any] | None:
    """Return metadata as a dict, or None when it is missing or unparsable."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            logger.warning("Dropping unparsable message metadata: %.80s", raw)
            return None
        if isinstance(decoded, dict):
            return decoded
    logger.warning("Dropping message metadata of type %s", type(raw).__name__)
    return None


class _Inbound(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class ChatMessagePayload(_Inbound):
    id: int = 0
    sender_id: int = Field(validation_alias=_alias("sender_id", "senderId"))
    sender_username: str = Field(default="", validation_alias=_alias("sender_username", "senderUsername"))
    content: str = ""
    message_type: MessageType = Field(
        default=MessageType.TEXT,
        validation_alias=_alias("message_type", "messageType", "type"),
    )
    metadata: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=_utcnow, validation_alias=_alias("created_at", "createdAt"))

    @field_validator("message_type", mode="before")
    @classmethod
    def _known_message_type(cls, value: Any) -> Any:
        if value is None:
            return MessageType.TEXT
        try:
            return MessageType(value)
        except ValueError:
            logger.warning("Unknown message type %r, treating as text", value)
            return MessageType.TEXT

    @field_validator("metadata", mode="before")
    @classmethod
    def _decode_metadata(cls, value: Any) -> Any:
        return decode_metadata(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _default_created_at(cls, value: Any) -> Any:
        return _utcnow() if value is None else value


class GlobalMessageEvent(ChatMessagePayload):
    """Broadcast-channel message, including tournament announcements."""

    def to_message(self) -> Message:
        return Message(
            id=self.id,
            channel_type=ChannelType.GLOBAL,
            sender_id=self.sender_id,
            sender_username=self.sender_username,
            content=self.content,
            type=self.message_type,
            created_at=self.created_at,
            conversation_id=GLOBAL_CONVERSATION_ID,
            metadata=self.metadata,
        )


class PrivateMessageEvent(ChatMessagePayload):
    recipient_id: int | None = Field(default=None, validation_alias=_alias("recipient_id", "recipientId"))
    conversation_id: int | None = Field(
        default=None, validation_alias=_alias("conversation_id", "conversationId"),
    )

    def to_message(self) -> Message:
        return Message(
            id=self.id,
            channel_type=ChannelType.PRIVATE,
            sender_id=self.sender_id,
            sender_username=self.sender_username,
            content=self.content,
            type=self.message_type,
            created_at=self.created_at,
            recipient_id=self.recipient_id,
            conversation_id=self.conversation_id,
            metadata=self.metadata,
        )


class GameInvitationEvent(ChatMessagePayload):
    conversation_id: int | None = Field(
        default=None, validation_alias=_alias("conversation_id", "conversationId"),
    )

    def to_message(self) -> Message:
        return Message(
            id=self.id,
            channel_type=ChannelType.PRIVATE,
            sender_id=self.sender_id,
            sender_username=self.sender_username,
            content=self.content,
            type=MessageType.GAME_INVITE,
            created_at=self.created_at,
            conversation_id=self.conversation_id,
            metadata=self.metadata,
        )


class TypingEvent(_Inbound):
    peer_id: int = Field(validation_alias=_alias("peer_id", "peerId", "user_id", "userId"))
    username: str = ""
    is_typing: bool = Field(validation_alias=_alias("is_typing", "isTyping"))


class UnreadCount(_Inbound):
    peer_id: int = Field(validation_alias=_alias("peer_id", "peerId", "user_id", "userId"))
    username: str = ""
    count: int = Field(ge=0)
    last_message_time: datetime = Field(
        default_factory=_utcnow,
        validation_alias=_alias("last_message_time", "lastMessageTime"),
    )


class UnreadSnapshotEvent(_Inbound):
    """Server-side unread counts; also the body of GET /api/chat/unread-counts."""

    total_unread_count: int | None = Field(
        default=None, validation_alias=_alias("total_unread_count", "totalUnreadCount"),
    )
    unread_counts: list[UnreadCount] | None = Field(
        default=None, validation_alias=_alias("unread_counts", "unreadCounts"),
    )


class NotificationPayload(_Inbound):
    id: int
    user_id: int = Field(default=0, validation_alias=_alias("user_id", "userId"))
    type: str = ""
    title: str = ""
    message: str = ""
    metadata: dict[str, Any] | None = None
    is_read: bool = Field(default=False, validation_alias=_alias("is_read", "isRead"))
    created_at: datetime = Field(default_factory=_utcnow, validation_alias=_alias("created_at", "createdAt"))

    @field_validator("metadata", mode="before")
    @classmethod
    def _decode_metadata(cls, value: Any) -> Any:
        return decode_metadata(value)

    def to_entity(self) -> UserNotification:
        return UserNotification(
            id=self.id,
            user_id=self.user_id,
            type=self.type,
            title=self.title,
            message=self.message,
            is_read=self.is_read,
            created_at=self.created_at,
            metadata=self.metadata,
        )


class NotificationsEvent(_Inbound):
    notifications: list[NotificationPayload] = []
    unread_count: int = Field(default=0, validation_alias=_alias("unread_count", "unreadCount"))


class OnlineUserPayload(_Inbound):
    id: int
    username: str = ""
    is_online: bool = Field(default=True, validation_alias=_alias("is_online", "isOnline"))
    avatar_url: str | None = Field(default=None, validation_alias=_alias("avatar_url", "avatarUrl", "avatar"))

    def to_entity(self) -> OnlineUser:
        return OnlineUser(
            id=self.id,
            username=self.username,
            is_online=self.is_online,
            avatar_url=self.avatar_url,
        )


class PresenceListEvent(_Inbound):
    users: list[OnlineUserPayload] = []


class PresenceUpdateUser(OnlineUserPayload):
    """A single presence change; a missing online flag means the user left."""

    is_online: bool = Field(default=False, validation_alias=_alias("is_online", "isOnline"))


class PresenceUpdateEvent(_Inbound):
    user: PresenceUpdateUser


@dataclass(frozen=True, slots=True)
class MalformedEvent:
    tag: str
    error: str
    payload: Any = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class UnrecognizedEvent:
    tag: str


InboundEvent = Union[
    GlobalMessageEvent,
    PrivateMessageEvent,
    GameInvitationEvent,
    TypingEvent,
    UnreadSnapshotEvent,
    NotificationsEvent,
    PresenceListEvent,
    PresenceUpdateEvent,
    MalformedEvent,
    UnrecognizedEvent,
]

EVENT_TYPES: dict[str, type[_Inbound]] = {
    "chat:global_message": GlobalMessageEvent,
    "chat:tournament_invitation": GlobalMessageEvent,
    "chat:private_message": PrivateMessageEvent,
    "chat:game_invitation": GameInvitationEvent,
    "chat:user_typing": TypingEvent,
    "chat:unread_update": UnreadSnapshotEvent,
    "notifications:update": NotificationsEvent,
    "presence:list": PresenceListEvent,
    "presence:update": PresenceUpdateEvent,
}


def parse_event(tag: str, payload: Any) -> InboundEvent:
    """Turn a raw (tag, payload) pair into exactly one event variant.

    Payloads may arrive wrapped as ``{"data": {...}}``; the wrapper is
    stripped. Never raises.
    """
    model = EVENT_TYPES.get(tag)
    if model is None:
        return UnrecognizedEvent(tag=tag)

    if isinstance(payload, Mapping) and isinstance(payload.get("data"), Mapping):
        payload = payload["data"]
    if not isinstance(payload, Mapping):
        return MalformedEvent(tag=tag, error="payload is not an object", payload=payload)

    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except PydanticValidationError as exc:
        return MalformedEvent(tag=tag, error=str(exc), payload=payload)
