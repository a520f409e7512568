"""Match/session flags owned by the game side of the client."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class SessionFlags:
    """Implements application.ports.session.SessionState.

    The game layer flips these flags; the chat core only reads them to decide
    whether an incoming game invitation can be shown.
    """

    user_id: int | None = None
    invite_open: bool = False
    outgoing_challenge: bool = False
    pending_remote_game_id: str | None = None
    active_remote_game: bool = False

    def current_user_id(self) -> int | None:
        return self.user_id

    def is_busy(self) -> bool:
        return bool(
            self.invite_open
            or self.outgoing_challenge
            or self.pending_remote_game_id
            or self.active_remote_game
        )
