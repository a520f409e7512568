from __future__ import annotations

from typing import Protocol


class SessionState(Protocol):
    """Current user and cross-feature match state owned outside the chat core."""

    def current_user_id(self) -> int | None: ...

    def is_busy(self) -> bool: ...
