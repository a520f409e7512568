"""Typing presence, in both directions.

Local side: keystrokes while a private conversation is open send
``typing=true`` at most once per cooldown, even across stops, and a stop timer
measured from the last keystroke sends ``typing=false``.

Remote side: each ``typing=true`` from a peer (re)arms an expiry timer, so a
lost ``typing=false`` (disconnect, dropped frame) still clears the indicator.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.scheduler import Scheduler, TimerHandle
from chat_client.application.ports.transport import ChatTransport
from chat_client.domain.entities.presence import TypingEntry

logger = logging.getLogger(__name__)

TYPING_TIMEOUT_MS = 3000
TYPING_COOLDOWN_MS = 1000

TypingListener = Callable[[Sequence[str] | None], None]


@dataclass(slots=True)
class _LocalTyping:
    announced: bool = False
    stop_timer: TimerHandle | None = None


class TypingCoordinator:
    def __init__(
        self,
        transport: ChatTransport,
        scheduler: Scheduler,
        clock: Clock | None = None,
        on_change: TypingListener | None = None,
        *,
        timeout_ms: int = TYPING_TIMEOUT_MS,
        cooldown_ms: int = TYPING_COOLDOWN_MS,
    ) -> None:
        self._transport = transport
        self._scheduler = scheduler
        self._clock = clock or SystemClock()
        self._on_change = on_change
        self._timeout_ms = timeout_ms
        self._cooldown_ms = cooldown_ms
        self._remote: dict[int, TypingEntry] = {}
        self._local: dict[int, _LocalTyping] = {}
        self._last_sent_ms: dict[int, float] = {}

    # -- remote peers ---------------------------------------------------

    def remote_typing(self, peer_id: int, username: str, is_typing: bool) -> None:
        if not is_typing:
            self._drop_remote(peer_id)
            self._notify()
            return

        previous = self._remote.get(peer_id)
        if previous is not None:
            self._scheduler.cancel(previous.timer)
        entry = TypingEntry(peer_id=peer_id, username=username or (previous.username if previous else ""))
        entry.timer = self._scheduler.schedule(self._timeout_ms, lambda: self._expire(entry))
        self._remote[peer_id] = entry
        self._notify()

    def typing_usernames(self) -> list[str]:
        return [e.username for e in self._remote.values()]

    def is_remote_typing(self, peer_id: int) -> bool:
        return peer_id in self._remote

    def _expire(self, entry: TypingEntry) -> None:
        if self._remote.get(entry.peer_id) is not entry:
            return
        del self._remote[entry.peer_id]
        logger.debug("Typing indicator for peer %s expired", entry.peer_id)
        self._notify()

    def _drop_remote(self, peer_id: int) -> bool:
        entry = self._remote.pop(peer_id, None)
        if entry is None:
            return False
        self._scheduler.cancel(entry.timer)
        return True

    def _notify(self) -> None:
        if self._on_change is None:
            return
        names = self.typing_usernames()
        self._on_change(names or None)

    # -- local user -----------------------------------------------------

    def local_keystroke(self, peer_id: int) -> None:
        state = self._local.get(peer_id)
        if state is None:
            self.stop_local()
            state = _LocalTyping()
            self._local[peer_id] = state

        now = self._clock.monotonic_ms()
        last_sent = self._last_sent_ms.get(peer_id)
        if last_sent is None or now - last_sent >= self._cooldown_ms:
            self._last_sent_ms[peer_id] = now
            state.announced = True
            self._transport.send_typing_indicator(peer_id, True)

        self._scheduler.cancel(state.stop_timer)
        state.stop_timer = self._scheduler.schedule(self._timeout_ms, lambda: self.stop_local(peer_id))

    def stop_local(self, peer_id: int | None = None) -> None:
        """Leave the Typing state for one peer, or for all when no peer is given."""
        peers = [peer_id] if peer_id is not None else list(self._local)
        for peer in peers:
            state = self._local.pop(peer, None)
            if state is None:
                continue
            self._scheduler.cancel(state.stop_timer)
            if state.announced:
                self._transport.send_typing_indicator(peer, False)

    def is_typing_locally(self, peer_id: int) -> bool:
        return peer_id in self._local

    # -- teardown -------------------------------------------------------

    def clear_peer(self, peer_id: int) -> None:
        """Forget a peer without sending anything (used when blocking)."""
        local = self._local.pop(peer_id, None)
        if local is not None:
            self._scheduler.cancel(local.stop_timer)
        if self._drop_remote(peer_id):
            self._notify()

    def close(self) -> None:
        for entry in self._remote.values():
            self._scheduler.cancel(entry.timer)
        for state in self._local.values():
            self._scheduler.cancel(state.stop_timer)
        self._remote.clear()
        self._local.clear()
        self._last_sent_ms.clear()
