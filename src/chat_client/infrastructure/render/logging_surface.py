"""Render surface for headless runs: every render call becomes a log line."""
from __future__ import annotations

import logging
from typing import Sequence

from chat_client.domain.entities.message import Message
from chat_client.domain.entities.presence import OnlineUser

logger = logging.getLogger(__name__)


class LoggingRenderSurface:
    """Implements application.ports.render.RenderSurface."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def render_conversation(self, messages: Sequence[Message]) -> None:
        self._log.info("conversation: %d messages", len(messages))
        for m in messages:
            self._log.debug("  [%s] %s: %s", m.type, m.sender_username or m.sender_id, m.content)

    def update_main_badge(self, total: int) -> None:
        self._log.info("unread total: %d", total)

    def update_user_badge(self, peer_id: int, count: int) -> None:
        self._log.debug("unread from %s: %d", peer_id, count)

    def update_typing_indicator(self, usernames: Sequence[str] | None) -> None:
        if usernames:
            self._log.info("typing: %s", ", ".join(usernames))
        else:
            self._log.debug("typing: nobody")

    def show_invitation_prompt(self, peer_id: int, username: str) -> None:
        self._log.info("game invitation from %s (%s)", username, peer_id)

    def show_user_error(self, message: str) -> None:
        self._log.warning("chat error: %s", message)

    def render_online_users(self, users: Sequence[OnlineUser]) -> None:
        self._log.info("online: %s", ", ".join(u.username for u in users) or "-")

    def update_notification_badge(self, count: int) -> None:
        self._log.info("unread notifications: %d", count)

    def show_blocked_conversation(self, peer_id: int) -> None:
        self._log.info("conversation with %s is blocked", peer_id)
