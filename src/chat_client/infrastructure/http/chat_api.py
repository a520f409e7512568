"""httpx client for the chat REST endpoints used at bootstrap and on refresh."""
from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from chat_client.application.dto.events import UnreadSnapshotEvent
from chat_client.application.exceptions import TransportError
from chat_client.domain.entities.message import Message
from chat_client.domain.value_objects.ids import GLOBAL_CONVERSATION_ID
from chat_client.infrastructure.http.schemas import (
    BlockedUsersResponse,
    ConversationRecord,
    ConversationsResponse,
    MarkReadResponse,
    MessagesResponse,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class HttpChatApi:
    """Implements application.ports.transport.ChatApi.

    Every failure (connection, non-2xx status, unexpected body) surfaces as
    TransportError so callers handle a single exception type.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_blocked_users(self) -> list[int]:
        body = await self._request("GET", "/api/chat/blocked", BlockedUsersResponse)
        return [u.id for u in body.blocked_users]

    async def fetch_unread_counts(self) -> UnreadSnapshotEvent:
        return await self._request("GET", "/api/chat/unread-counts", UnreadSnapshotEvent)

    async def mark_read(self, peer_id: int) -> int:
        body = await self._request(
            "POST", "/api/chat/mark-read", MarkReadResponse, json={"otherUserId": peer_id},
        )
        return body.total_unread_count

    async def fetch_conversations(self) -> list[dict[str, Any]]:
        body = await self._request("GET", "/api/chat/conversations", ConversationsResponse)
        return body.conversations

    async def fetch_messages(
        self,
        conversation_id: int,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Message]:
        if conversation_id == GLOBAL_CONVERSATION_ID:
            path = "/api/chat/global"
        else:
            path = f"/api/chat/conversations/{conversation_id}/messages"
        body = await self._request(
            "GET", path, MessagesResponse, params={"limit": limit, "offset": offset},
        )
        return [m.to_message(conversation_id) for m in body.messages]

    async def fetch_peer_history(self, peer_id: int, *, limit: int = 50) -> list[Message]:
        """Find the private conversation with ``peer_id`` and load one page of it."""
        for raw in await self.fetch_conversations():
            try:
                conversation = ConversationRecord.model_validate(raw)
            except PydanticValidationError:
                logger.debug("Skipping malformed conversation record %r", raw)
                continue
            if conversation.id != GLOBAL_CONVERSATION_ID and conversation.has_participant(peer_id):
                return await self.fetch_messages(conversation.id, limit=limit)
        return []

    async def _request(
        self,
        method: str,
        path: str,
        model: type[ModelT],
        **kwargs: Any,
    ) -> ModelT:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return model.model_validate(response.json())
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"{method} {path} failed with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        except (ValueError, PydanticValidationError) as exc:
            raise TransportError(f"{method} {path} returned an unexpected body") from exc
