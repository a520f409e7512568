from __future__ import annotations

import asyncio
from typing import Callable

from chat_client.application.ports.scheduler import TimerHandle


class AsyncioScheduler:
    """Implements application.ports.scheduler.Scheduler on the running loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        return self._get_loop().call_later(max(delay_ms, 0) / 1000, callback)

    def cancel(self, handle: TimerHandle | None) -> None:
        if handle is not None:
            handle.cancel()
