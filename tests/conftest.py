"""Shared test fixtures."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Sequence

import pytest

from chat_client.application.dto.events import UnreadCount, UnreadSnapshotEvent
from chat_client.application.exceptions import TransportError
from chat_client.config import ChatOptions
from chat_client.domain.entities.message import Message
from chat_client.domain.entities.presence import OnlineUser
from chat_client.domain.value_objects.enums import ChannelType, MessageType
from chat_client.infrastructure.session import SessionFlags
from chat_client.services.chat_controller import ChatController

SELF_ID = 42
EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


@dataclass
class _Timer:
    due_ms: float
    seq: int
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Scheduler and Clock on a time line that only moves via ``advance``."""

    def __init__(self, start_ms: float = 0.0) -> None:
        self.now_ms = start_ms
        self._timers: list[_Timer] = []
        self._seq = 0

    def now(self) -> datetime:
        return EPOCH + timedelta(milliseconds=self.now_ms)

    def monotonic_ms(self) -> float:
        return self.now_ms

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> _Timer:
        self._seq += 1
        timer = _Timer(due_ms=self.now_ms + delay_ms, seq=self._seq, callback=callback)
        self._timers.append(timer)
        return timer

    def cancel(self, handle: Any) -> None:
        if handle is not None:
            handle.cancel()

    def advance(self, ms: float) -> None:
        target = self.now_ms + ms
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due_ms <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due_ms, t.seq))
            self._timers.remove(timer)
            self.now_ms = timer.due_ms
            timer.callback()
        self.now_ms = target
        self._timers = [t for t in self._timers if not t.cancelled]

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)


@dataclass
class FakeTransport:
    calls: list[tuple[Any, ...]] = field(default_factory=list)

    def send_global_message(self, content: str, message_type: MessageType = MessageType.TEXT) -> None:
        self.calls.append(("global", content, message_type))

    def send_private_message(self, peer_id: int, content: str, message_type: MessageType = MessageType.TEXT) -> None:
        self.calls.append(("private", peer_id, content, message_type))

    def send_typing_indicator(self, peer_id: int, is_typing: bool) -> None:
        self.calls.append(("typing", peer_id, is_typing))

    def request_online_users(self) -> None:
        self.calls.append(("online_users",))

    def mark_notification_read(self, notification_id: int) -> None:
        self.calls.append(("notification_read", notification_id))

    def mark_all_notifications_read(self) -> None:
        self.calls.append(("notifications_read_all",))

    def create_remote_game(self, peer_id: int) -> None:
        self.calls.append(("create_game", peer_id))

    def decline_challenge(self, peer_id: int) -> None:
        self.calls.append(("decline", peer_id))

    def named(self, name: str) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == name]


@dataclass
class FakeRender:
    calls: list[tuple[str, Any]] = field(default_factory=list)

    def render_conversation(self, messages: Sequence[Message]) -> None:
        self.calls.append(("conversation", list(messages)))

    def update_main_badge(self, total: int) -> None:
        self.calls.append(("main_badge", total))

    def update_user_badge(self, peer_id: int, count: int) -> None:
        self.calls.append(("user_badge", (peer_id, count)))

    def update_typing_indicator(self, usernames: Sequence[str] | None) -> None:
        self.calls.append(("typing", list(usernames) if usernames else None))

    def show_invitation_prompt(self, peer_id: int, username: str) -> None:
        self.calls.append(("invitation", (peer_id, username)))

    def show_user_error(self, message: str) -> None:
        self.calls.append(("error", message))

    def render_online_users(self, users: Sequence[OnlineUser]) -> None:
        self.calls.append(("online_users", list(users)))

    def update_notification_badge(self, count: int) -> None:
        self.calls.append(("notification_badge", count))

    def show_blocked_conversation(self, peer_id: int) -> None:
        self.calls.append(("blocked_conversation", peer_id))

    def named(self, name: str) -> list[Any]:
        return [arg for call, arg in self.calls if call == name]

    def last(self, name: str) -> Any:
        found = self.named(name)
        return found[-1] if found else None

    def clear(self) -> None:
        self.calls.clear()


@dataclass
class FakeChatApi:
    blocked: list[int] = field(default_factory=list)
    unread: list[UnreadCount] = field(default_factory=list)
    global_history: list[Message] = field(default_factory=list)
    histories: dict[int, list[Message]] = field(default_factory=dict)
    mark_read_total: int | None = None
    failing: set[str] = field(default_factory=set)
    mark_read_calls: list[int] = field(default_factory=list)
    history_calls: list[int] = field(default_factory=list)

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise TransportError(f"{name} unavailable")

    async def fetch_blocked_users(self) -> list[int]:
        self._check("fetch_blocked_users")
        return list(self.blocked)

    async def fetch_unread_counts(self) -> UnreadSnapshotEvent:
        self._check("fetch_unread_counts")
        return UnreadSnapshotEvent(
            unread_counts=list(self.unread),
            total_unread_count=sum(u.count for u in self.unread),
        )

    async def mark_read(self, peer_id: int) -> int:
        self.mark_read_calls.append(peer_id)
        self._check("mark_read")
        self.unread = [u for u in self.unread if u.peer_id != peer_id]
        if self.mark_read_total is not None:
            return self.mark_read_total
        return sum(u.count for u in self.unread)

    async def fetch_conversations(self) -> list[dict[str, Any]]:
        self._check("fetch_conversations")
        return []

    async def fetch_messages(self, conversation_id: int, *, limit: int = 50, offset: int = 0) -> list[Message]:
        self._check("fetch_messages")
        return self.global_history[-limit:]

    async def fetch_peer_history(self, peer_id: int, *, limit: int = 50) -> list[Message]:
        self.history_calls.append(peer_id)
        self._check("fetch_peer_history")
        return self.histories.get(peer_id, [])[-limit:]


def make_message(
    *,
    message_id: int = 1,
    sender_id: int = 7,
    sender_username: str = "alice",
    content: str = "hello",
    channel_type: ChannelType = ChannelType.PRIVATE,
    recipient_id: int | None = SELF_ID,
    message_type: MessageType = MessageType.TEXT,
    metadata: dict[str, Any] | None = None,
) -> Message:
    return Message(
        id=message_id,
        channel_type=channel_type,
        sender_id=sender_id,
        sender_username=sender_username,
        content=content,
        type=message_type,
        created_at=EPOCH,
        recipient_id=recipient_id if channel_type == ChannelType.PRIVATE else None,
        conversation_id=1 if channel_type == ChannelType.GLOBAL else 10,
        metadata=metadata,
    )


def global_payload(message_id: int, sender_id: int = 7, content: str = "hi", **extra: Any) -> dict[str, Any]:
    return {
        "id": message_id,
        "sender_id": sender_id,
        "sender_username": f"user{sender_id}",
        "content": content,
        "created_at": "2024-01-01T00:00:00Z",
        **extra,
    }


def private_payload(
    message_id: int,
    sender_id: int = 7,
    recipient_id: int = SELF_ID,
    content: str = "hi",
    **extra: Any,
) -> dict[str, Any]:
    return {
        **global_payload(message_id, sender_id, content),
        "recipient_id": recipient_id,
        "conversation_id": 10,
        **extra,
    }


@dataclass
class ChatHarness:
    controller: ChatController
    transport: FakeTransport
    render: FakeRender
    api: FakeChatApi
    session: SessionFlags
    scheduler: FakeScheduler


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler(start_ms=10_000)


@pytest.fixture
def harness(scheduler: FakeScheduler) -> ChatHarness:
    transport = FakeTransport()
    render = FakeRender()
    api = FakeChatApi()
    session = SessionFlags(user_id=SELF_ID)
    controller = ChatController(
        transport, api, render, session, scheduler, scheduler, ChatOptions(),
    )
    return ChatHarness(
        controller=controller,
        transport=transport,
        render=render,
        api=api,
        session=session,
        scheduler=scheduler,
    )
