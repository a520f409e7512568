from __future__ import annotations

from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Delayed callbacks on the event loop, delays in milliseconds."""

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle: ...

    def cancel(self, handle: TimerHandle | None) -> None: ...
