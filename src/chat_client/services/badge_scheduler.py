from __future__ import annotations

import logging
from typing import Callable

from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

BADGE_MIN_INTERVAL_MS = 1000
BADGE_COALESCE_MS = 200
BADGE_TICK_MS = 5000


class BadgeScheduler:
    """Throttled, coalesced trigger for the badge recompute.

    ``trigger()`` runs the recompute right away when allowed. Otherwise the
    call is dropped and a single trailing run is armed for after the burst,
    never earlier than the minimum interval since the last completed run.
    """

    def __init__(
        self,
        recompute: Callable[[], None],
        scheduler: Scheduler,
        clock: Clock | None = None,
        *,
        min_interval_ms: int = BADGE_MIN_INTERVAL_MS,
        coalesce_ms: int = BADGE_COALESCE_MS,
        tick_ms: int = BADGE_TICK_MS,
    ) -> None:
        self._recompute = recompute
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._min_interval_ms = min_interval_ms
        self._coalesce_ms = coalesce_ms
        self._tick_ms = tick_ms
        self._in_flight = False
        self._pending = False
        self._last_completed_ms: float | None = None
        self._trailing: TimerHandle | None = None
        self._ticker: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def running(self) -> bool:
        return self._ticker is not None

    def trigger(self) -> bool:
        """Request a recompute; returns True if it ran synchronously."""
        if self._in_flight or not self._interval_elapsed():
            self._pending = True
            self._arm_trailing()
            return False
        self._run()
        return True

    def start(self) -> None:
        if self._ticker is None:
            self._ticker = self._scheduler.schedule(self._tick_ms, self._tick)

    def stop(self) -> None:
        self._scheduler.cancel(self._ticker)
        self._scheduler.cancel(self._trailing)
        self._ticker = None
        self._trailing = None
        self._pending = False

    def _tick(self) -> None:
        self._ticker = self._scheduler.schedule(self._tick_ms, self._tick)
        self.trigger()

    def _flush(self) -> None:
        self._trailing = None
        if self._pending:
            self.trigger()

    def _interval_elapsed(self) -> bool:
        if self._last_completed_ms is None:
            return True
        return self._clock.monotonic_ms() - self._last_completed_ms >= self._min_interval_ms

    def _arm_trailing(self) -> None:
        delay: float = self._coalesce_ms
        if self._last_completed_ms is not None:
            remaining = self._min_interval_ms - (self._clock.monotonic_ms() - self._last_completed_ms)
            delay = max(delay, remaining)
        self._scheduler.cancel(self._trailing)
        self._trailing = self._scheduler.schedule(delay, self._flush)

    def _run(self) -> None:
        self._in_flight = True
        self._pending = False
        try:
            self._recompute()
        except Exception:
            logger.exception("Badge recompute failed")
        finally:
            self._in_flight = False
            self._last_completed_ms = self._clock.monotonic_ms()
