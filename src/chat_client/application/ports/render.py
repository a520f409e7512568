from __future__ import annotations

from typing import Protocol, Sequence

from chat_client.domain.entities.message import Message
from chat_client.domain.entities.presence import OnlineUser


class RenderSurface(Protocol):
    def render_conversation(self, messages: Sequence[Message]) -> None: ...

    def update_main_badge(self, total: int) -> None: ...

    def update_user_badge(self, peer_id: int, count: int) -> None: ...

    def update_typing_indicator(self, usernames: Sequence[str] | None) -> None: ...

    def show_invitation_prompt(self, peer_id: int, username: str) -> None: ...

    def show_user_error(self, message: str) -> None: ...

    def render_online_users(self, users: Sequence[OnlineUser]) -> None: ...

    def update_notification_badge(self, count: int) -> None: ...

    def show_blocked_conversation(self, peer_id: int) -> None: ...
