"""Redis Pub/Sub bridge between the realtime gateway and the chat core.

Inbound: ``RedisEventSource`` listens on the user's event channel and feeds
every frame to a dispatch callback (``ChatController.dispatch``).
Outbound: ``RedisCommandPublisher`` implements the ChatTransport port; calls
are queued synchronously and published by a background task.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import redis.asyncio as aioredis

from chat_client.domain.value_objects.enums import MessageType
from chat_client.infrastructure.bus.serializer import deserialize_envelope, serialize_envelope

logger = logging.getLogger(__name__)

DispatchCallback = Callable[[str, Any], None]


class RedisEventSource:
    """Background task that listens to a Redis channel and dispatches events."""

    def __init__(
        self,
        redis: aioredis.Redis,
        channel: str,
        dispatch: DispatchCallback,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._dispatch = dispatch
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._listen(), name="chat-event-source")
        logger.info("Chat event source started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Chat event source stopped")

    def handle_frame(self, raw: str | bytes) -> None:
        try:
            tag, payload = deserialize_envelope(raw)
        except ValueError:
            logger.warning("Dropping undecodable frame on %s", self._channel)
            return
        self._dispatch(tag, payload)

    async def _listen(self) -> None:
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message["type"] != "message":
                    continue
                try:
                    self.handle_frame(message["data"])
                except Exception:
                    logger.exception("Error processing chat event")
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()


class RedisCommandPublisher:
    """Implements application.ports.transport.ChatTransport over Redis Pub/Sub."""

    def __init__(self, redis: aioredis.Redis, channel: str) -> None:
        self._redis = redis
        self._channel = channel
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        self._task = asyncio.create_task(self._drain(), name="chat-command-publisher")
        logger.info("Chat command publisher started on channel=%s", self._channel)

    async def stop(self) -> None:
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            logger.info("Chat command publisher stopped (%d unsent)", self._queue.qsize())

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def send_global_message(self, content: str, message_type: MessageType = MessageType.TEXT) -> None:
        self._enqueue("chat:global_message", {"content": content, "messageType": message_type})

    def send_private_message(
        self, peer_id: int, content: str, message_type: MessageType = MessageType.TEXT,
    ) -> None:
        self._enqueue(
            "chat:private_message",
            {"recipientId": peer_id, "content": content, "messageType": message_type},
        )

    def send_typing_indicator(self, peer_id: int, is_typing: bool) -> None:
        self._enqueue("chat:typing", {"recipientId": peer_id, "isTyping": is_typing})

    def request_online_users(self) -> None:
        self._enqueue("presence:list", {})

    def mark_notification_read(self, notification_id: int) -> None:
        self._enqueue("notification:read", {"notificationId": notification_id})

    def mark_all_notifications_read(self) -> None:
        self._enqueue("notification:read_all", {})

    def create_remote_game(self, peer_id: int) -> None:
        self._enqueue("game:create", {"opponentId": peer_id, "gameMode": "classic"})

    def decline_challenge(self, peer_id: int) -> None:
        self._enqueue("game:challenge_declined", {"challengerId": peer_id})

    def _enqueue(self, event_type: str, payload: dict[str, Any]) -> None:
        self._queue.put_nowait(serialize_envelope(event_type, payload))

    async def _drain(self) -> None:
        while True:
            raw = await self._queue.get()
            try:
                await self._redis.publish(self._channel, raw)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Failed to publish chat command")
            finally:
                self._queue.task_done()
