from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...

    def monotonic_ms(self) -> float: ...


class SystemClock:
    """Default wall-clock implementation."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic_ms(self) -> float:
        return time.monotonic() * 1000
