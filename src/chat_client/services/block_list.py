from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BlockListChange:
    blocked: frozenset[int] = frozenset()
    unblocked: frozenset[int] = frozenset()


BlockListListener = Callable[[BlockListChange], None]


class BlockList:
    """Source of truth for blocked peers.

    Every mutation notifies listeners so dependent state (feeds, unread
    counters, typing timers, badges) is pruned synchronously.
    """

    def __init__(self, peers: Iterable[int] = ()) -> None:
        self._peers: set[int] = set(peers)
        self._listeners: list[BlockListListener] = []

    def add_listener(self, listener: BlockListListener) -> None:
        self._listeners.append(listener)

    def is_blocked(self, peer_id: int | None) -> bool:
        return peer_id is not None and peer_id in self._peers

    def peers(self) -> frozenset[int]:
        return frozenset(self._peers)

    def block(self, peer_id: int) -> None:
        if peer_id in self._peers:
            return
        self._peers.add(peer_id)
        logger.info("Blocked peer %s", peer_id)
        self._notify(BlockListChange(blocked=frozenset({peer_id})))

    def unblock(self, peer_id: int) -> None:
        if peer_id in self._peers:
            logger.info("Unblocked peer %s", peer_id)
        self._peers.discard(peer_id)
        self._notify(BlockListChange(unblocked=frozenset({peer_id})))

    def reconcile(self, snapshot: Iterable[int]) -> None:
        """Replace the whole blocklist with a server-provided snapshot."""
        new = set(snapshot)
        blocked = new - self._peers
        unblocked = self._peers - new
        self._peers = new
        logger.debug("Blocklist reconciled: %d blocked", len(new))
        self._notify(BlockListChange(blocked=frozenset(blocked), unblocked=frozenset(unblocked)))

    def clear(self) -> None:
        """Forget every entry without notifying; used on teardown."""
        self._peers.clear()

    def _notify(self, change: BlockListChange) -> None:
        for listener in list(self._listeners):
            listener(change)
