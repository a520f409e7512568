"""Chat state controller.

Receives inbound transport events and user actions, keeps the feeds,
unread counters, typing presence and blocklist consistent, and decides
when the render surface is called.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Mapping, assert_never

from chat_client.application.dto.events import (
    GameInvitationEvent,
    GlobalMessageEvent,
    InboundEvent,
    MalformedEvent,
    NotificationsEvent,
    PresenceListEvent,
    PresenceUpdateEvent,
    PrivateMessageEvent,
    TypingEvent,
    UnreadSnapshotEvent,
    UnrecognizedEvent,
    parse_event,
)
from chat_client.application.exceptions import BlockedPeerError, TransportError, ValidationError
from chat_client.application.policies.messaging import assert_not_blocked, resolve_peer, validate_outgoing
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.render import RenderSurface
from chat_client.application.ports.scheduler import Scheduler, TimerHandle
from chat_client.application.ports.session import SessionState
from chat_client.application.ports.transport import ChatApi, ChatTransport
from chat_client.config import ChatOptions
from chat_client.domain.entities.notification import UserNotification
from chat_client.domain.entities.presence import OnlineUser
from chat_client.domain.entities.selection import ConversationSelection
from chat_client.domain.entities.unread import UnreadEntry
from chat_client.domain.value_objects.enums import ChannelType, MessageType
from chat_client.domain.value_objects.ids import GLOBAL_CONVERSATION_ID
from chat_client.services.badge_scheduler import BadgeScheduler
from chat_client.services.block_list import BlockList, BlockListChange
from chat_client.services.conversation_store import ConversationStore
from chat_client.services.typing_coordinator import TypingCoordinator
from chat_client.services.unread_tracker import UnreadTracker

logger = logging.getLogger(__name__)

SELECT_PEER_FIRST = "Select a friend to chat with first"


class ChatController:
    def __init__(
        self,
        transport: ChatTransport,
        api: ChatApi,
        render: RenderSurface,
        session: SessionState,
        scheduler: Scheduler,
        clock: Clock | None = None,
        options: ChatOptions | None = None,
    ) -> None:
        self._transport = transport
        self._api = api
        self._render = render
        self._session = session
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._options = options or ChatOptions()

        opts = self._options
        self._block_list = BlockList()
        self._store = ConversationStore(self._block_list, capacity=opts.global_feed_capacity)
        self._badges = BadgeScheduler(
            self._push_badges,
            scheduler,
            self._clock,
            min_interval_ms=opts.badge_min_interval_ms,
            coalesce_ms=opts.badge_coalesce_ms,
            tick_ms=opts.badge_tick_ms,
        )
        self._unread = UnreadTracker(self._block_list, api, self._clock, on_change=self._badges.trigger)
        self._typing = TypingCoordinator(
            transport,
            scheduler,
            self._clock,
            on_change=render.update_typing_indicator,
            timeout_ms=opts.typing_timeout_ms,
            cooldown_ms=opts.typing_cooldown_ms,
        )
        self._block_list.add_listener(self._on_block_list_changed)

        self._selection = ConversationSelection.global_feed()
        self._online_users: dict[int, OnlineUser] = {}
        self._notifications: list[UserNotification] = []
        self._notification_unread = 0
        self._badged_peers: set[int] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._refresh_timer: TimerHandle | None = None

    # -- components and read accessors ----------------------------------

    @property
    def block_list(self) -> BlockList:
        return self._block_list

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def unread(self) -> UnreadTracker:
        return self._unread

    @property
    def typing(self) -> TypingCoordinator:
        return self._typing

    @property
    def badges(self) -> BadgeScheduler:
        return self._badges

    @property
    def selection(self) -> ConversationSelection:
        return self._selection

    @property
    def total_unread(self) -> int:
        return self._unread.total

    def unread_counts(self) -> dict[int, UnreadEntry]:
        return {e.peer_id: e for e in self._unread.entries()}

    @property
    def online_users(self) -> list[OnlineUser]:
        return list(self._online_users.values())

    def typing_usernames(self) -> list[str]:
        return self._typing.typing_usernames()

    @property
    def notifications(self) -> list[UserNotification]:
        return list(self._notifications)

    @property
    def notification_unread_count(self) -> int:
        return self._notification_unread

    def unread_notifications(self) -> list[UserNotification]:
        return [n for n in self._notifications if not n.is_read]

    def is_blocked(self, peer_id: int) -> bool:
        return self._block_list.is_blocked(peer_id)

    @property
    def blocked_peers(self) -> frozenset[int]:
        return self._block_list.peers()

    # -- lifecycle ------------------------------------------------------

    async def start(self) -> None:
        """Bootstrap from the server, render, then start background timers."""
        await self.refresh_blocked()
        await self._unread.refresh()
        await self._load_global_history()
        self._render_active()
        self._badges.start()
        self._arm_unread_refresh()
        logger.info("Chat controller started")

    async def stop(self) -> None:
        self._scheduler.cancel(self._refresh_timer)
        self._refresh_timer = None
        self._typing.close()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        self._block_list.clear()
        self._store.clear_all()
        self._unread.reset()
        self._selection = ConversationSelection.global_feed()
        self._online_users.clear()
        self._notifications = []
        self._notification_unread = 0
        self._badged_peers.clear()
        self._badges.stop()
        logger.info("Chat controller stopped")

    # -- inbound events -------------------------------------------------

    def dispatch(self, tag: str, payload: Mapping[str, Any] | Any) -> None:
        """Entry point for the transport; failures stay inside this event."""
        try:
            self.handle_event(parse_event(tag, payload))
        except Exception:
            logger.exception("Error handling %s event", tag)

    def handle_event(self, event: InboundEvent) -> None:
        if isinstance(event, GlobalMessageEvent):
            self._on_global_message(event)
        elif isinstance(event, PrivateMessageEvent):
            self._on_private_message(event)
        elif isinstance(event, GameInvitationEvent):
            self._on_game_invitation(event)
        elif isinstance(event, TypingEvent):
            self._on_typing(event)
        elif isinstance(event, UnreadSnapshotEvent):
            self._unread.reconcile(event)
        elif isinstance(event, NotificationsEvent):
            self._on_notifications(event)
        elif isinstance(event, PresenceListEvent):
            self._on_presence_list(event)
        elif isinstance(event, PresenceUpdateEvent):
            self._on_presence_update(event)
        elif isinstance(event, MalformedEvent):
            logger.warning("Dropping malformed %s event: %s", event.tag, event.error)
        elif isinstance(event, UnrecognizedEvent):
            logger.debug("Ignoring unrecognized event %s", event.tag)
        else:
            assert_never(event)

    def _on_global_message(self, event: GlobalMessageEvent) -> None:
        if not self._store.append_global(event.to_message()):
            return
        if self._selection.is_global:
            self._render_active()

    def _on_private_message(self, event: PrivateMessageEvent) -> None:
        message = event.to_message()
        self_id = self._session.current_user_id()
        peer_id = resolve_peer(message, self_id)
        if peer_id is None:
            logger.warning("Private message %s has no resolvable peer", message.id)
            return
        if not self._store.append_private(peer_id, message):
            return

        is_active = self._selection.is_private_with(peer_id)
        if message.sender_id != self_id and not is_active:
            self._unread.increment(peer_id, message.sender_username)
        if is_active:
            self._render_active()

    def _on_game_invitation(self, event: GameInvitationEvent) -> None:
        sender_id = event.sender_id
        if self._block_list.is_blocked(sender_id):
            return
        if self._session.is_busy():
            logger.warning("Ignoring game invitation from %s: user already busy with a match or challenge", sender_id)
            return

        self._render.show_invitation_prompt(sender_id, event.sender_username)
        if sender_id == self._session.current_user_id():
            return
        if self._store.append_private(sender_id, event.to_message()) and self._selection.is_private_with(sender_id):
            self._render_active()

    def _on_typing(self, event: TypingEvent) -> None:
        if self._block_list.is_blocked(event.peer_id):
            return
        self._typing.remote_typing(event.peer_id, event.username, event.is_typing)

    def _on_notifications(self, event: NotificationsEvent) -> None:
        self._notifications = [n.to_entity() for n in event.notifications]
        self._notification_unread = event.unread_count
        self._render.update_notification_badge(self._notification_unread)

    def _on_presence_list(self, event: PresenceListEvent) -> None:
        self._online_users = {u.id: u.to_entity() for u in event.users}
        self._render.render_online_users(self.online_users)
        self._badges.trigger()

    def _on_presence_update(self, event: PresenceUpdateEvent) -> None:
        user = event.user.to_entity()
        if user.is_online:
            self._online_users[user.id] = user
        else:
            self._online_users.pop(user.id, None)
        self._render.render_online_users(self.online_users)
        self._badges.trigger()

    # -- conversation selection -----------------------------------------

    def switch_to_global(self) -> None:
        self._typing.stop_local()
        self._selection = ConversationSelection.global_feed()
        self._render_active()

    async def select_private_conversation(self, peer_id: int, username: str) -> bool:
        try:
            assert_not_blocked(self._block_list, peer_id)
        except BlockedPeerError as exc:
            self._render.show_user_error(exc.detail)
            return False

        if not self._selection.is_private_with(peer_id):
            self._typing.stop_local()
        self._selection = ConversationSelection.private(peer_id)
        self._unread.mark_read(peer_id)
        self._render_active()
        logger.debug("Selected private conversation with %s (%s)", peer_id, username)

        await asyncio.gather(
            self._unread.confirm_read(peer_id),
            self._load_private_history(peer_id),
        )
        return True

    async def switch_to_conversation(self, kind: ChannelType, peer_id: int | None = None) -> bool:
        if kind == ChannelType.GLOBAL:
            self.switch_to_global()
            return True
        if peer_id is None:
            self._typing.stop_local()
            self._selection = ConversationSelection(kind=ChannelType.PRIVATE)
            self._render_active()
            return True
        user = self._online_users.get(peer_id)
        username = user.username if user else f"User {peer_id}"
        return await self.select_private_conversation(peer_id, username)

    async def _load_private_history(self, peer_id: int) -> None:
        if self._block_list.is_blocked(peer_id):
            return
        try:
            messages = await self._api.fetch_peer_history(peer_id, limit=self._options.history_page_size)
        except TransportError:
            logger.exception("Failed to load private history with %s", peer_id)
            return
        if not self._store.replace_private(peer_id, messages):
            return
        if self._selection.is_private_with(peer_id):
            self._render_active()

    async def _load_global_history(self) -> None:
        try:
            messages = await self._api.fetch_messages(
                GLOBAL_CONVERSATION_ID, limit=self._options.history_page_size,
            )
        except TransportError:
            logger.exception("Failed to load global chat history")
            return
        self._store.replace_global(messages)

    # -- outbound user actions ------------------------------------------

    def send_message(self, text: str, message_type: MessageType = MessageType.TEXT) -> bool:
        """Send to the active conversation.

        Returns True when the message went to the transport, i.e. when the
        caller should clear its input.
        """
        try:
            content = validate_outgoing(text, max_chars=self._options.message_max_chars)
            if self._selection.is_global:
                self._transport.send_global_message(content, message_type)
            else:
                peer_id = self._selection.peer_id
                if peer_id is None:
                    raise ValidationError(SELECT_PEER_FIRST)
                assert_not_blocked(self._block_list, peer_id)
                self._transport.send_private_message(peer_id, content, message_type)
        except ValidationError as exc:
            if exc.detail:
                self._render.show_user_error(exc.detail)
            return False

        self._typing.stop_local()
        return True

    def on_keystroke(self) -> None:
        peer_id = self._selection.peer_id
        if self._selection.is_global or peer_id is None or self._block_list.is_blocked(peer_id):
            return
        self._typing.local_keystroke(peer_id)

    def accept_invitation(self, peer_id: int) -> None:
        self._transport.create_remote_game(peer_id)

    def decline_invitation(self, peer_id: int) -> None:
        self._transport.decline_challenge(peer_id)

    def mark_notification_read(self, notification_id: int) -> None:
        self._transport.mark_notification_read(notification_id)

    def mark_all_notifications_read(self) -> None:
        self._transport.mark_all_notifications_read()

    def refresh(self) -> None:
        self._transport.request_online_users()
        self._badges.trigger()

    # -- blocklist ------------------------------------------------------

    def block_peer(self, peer_id: int) -> None:
        self._block_list.block(peer_id)

    def unblock_peer(self, peer_id: int) -> None:
        self._block_list.unblock(peer_id)

    async def refresh_blocked(self) -> None:
        try:
            peers = await self._api.fetch_blocked_users()
        except TransportError:
            logger.exception("Failed to load blocked users")
            return
        self._block_list.reconcile(peers)

    def _on_block_list_changed(self, change: BlockListChange) -> None:
        for peer_id in change.blocked:
            self._unread.clear(peer_id)
            self._typing.clear_peer(peer_id)
        if change.blocked:
            self._store.prune_blocked()
            active_peer = self._selection.peer_id
            if active_peer is not None and active_peer in change.blocked:
                self._render.show_blocked_conversation(active_peer)
            elif self._selection.is_global:
                self._render_active()
        self._badges.trigger()

    # -- unread ---------------------------------------------------------

    async def refresh_unread(self) -> None:
        await self._unread.refresh()
        self._badges.trigger()

    def _arm_unread_refresh(self) -> None:
        interval = self._options.unread_refresh_interval_ms
        if interval > 0:
            self._refresh_timer = self._scheduler.schedule(interval, self._on_unread_refresh_due)

    def _on_unread_refresh_due(self) -> None:
        self._arm_unread_refresh()
        self._spawn(self.refresh_unread(), name="chat-unread-refresh")

    # -- history management ---------------------------------------------

    def clear_conversation(self, peer_id: int) -> None:
        self._store.clear_peer(peer_id)
        if self._selection.is_private_with(peer_id):
            self._render_active()

    def clear_all_history(self) -> None:
        self._store.clear_all()
        self._render_active()

    # -- rendering ------------------------------------------------------

    def _render_active(self) -> None:
        self._render.render_conversation(self._store.get_active(self._selection))

    def _push_badges(self) -> None:
        self._render.update_main_badge(self._unread.total)
        counts = {e.peer_id: e.count for e in self._unread.entries()}
        for peer_id in sorted(set(counts) | set(self._online_users) | self._badged_peers):
            self._render.update_user_badge(peer_id, counts.get(peer_id, 0))
        self._badged_peers = set(counts)

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> asyncio.Task[None]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
