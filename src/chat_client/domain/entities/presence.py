from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chat_client.application.ports.scheduler import TimerHandle


@dataclass(frozen=True, slots=True)
class OnlineUser:
    id: int
    username: str
    is_online: bool = True
    avatar_url: str | None = None


@dataclass(slots=True)
class TypingEntry:
    """A peer currently shown as typing; ``timer`` expires the entry."""

    peer_id: int
    username: str
    timer: TimerHandle | None = None
