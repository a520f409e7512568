from __future__ import annotations

from typing import Any, Protocol

from chat_client.application.dto.events import UnreadSnapshotEvent
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.enums import MessageType


class ChatTransport(Protocol):
    """Fire-and-forget commands sent over the realtime connection."""

    def send_global_message(self, content: str, message_type: MessageType = MessageType.TEXT) -> None: ...

    def send_private_message(
        self, peer_id: int, content: str, message_type: MessageType = MessageType.TEXT,
    ) -> None: ...

    def send_typing_indicator(self, peer_id: int, is_typing: bool) -> None: ...

    def request_online_users(self) -> None: ...

    def mark_notification_read(self, notification_id: int) -> None: ...

    def mark_all_notifications_read(self) -> None: ...

    def create_remote_game(self, peer_id: int) -> None: ...

    def decline_challenge(self, peer_id: int) -> None: ...


class ChatApi(Protocol):
    """Request/response reads against the chat REST API.

    Implementations raise TransportError on network or HTTP failure.
    """

    async def fetch_blocked_users(self) -> list[int]: ...

    async def fetch_unread_counts(self) -> UnreadSnapshotEvent: ...

    async def mark_read(self, peer_id: int) -> int: ...

    async def fetch_conversations(self) -> list[dict[str, Any]]: ...

    async def fetch_messages(
        self, conversation_id: int, *, limit: int = 50, offset: int = 0,
    ) -> list[Message]: ...

    async def fetch_peer_history(self, peer_id: int, *, limit: int = 50) -> list[Message]: ...
