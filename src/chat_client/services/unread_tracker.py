from __future__ import annotations

import logging
from typing import Callable

from chat_client.application.dto.events import UnreadSnapshotEvent
from chat_client.application.exceptions import TransportError
from chat_client.application.ports.clock import Clock, SystemClock
from chat_client.application.ports.transport import ChatApi
from chat_client.domain.entities.unread import UnreadEntry
from chat_client.services.block_list import BlockList

logger = logging.getLogger(__name__)


class UnreadTracker:
    """Per-peer unread counters and their aggregate.

    The aggregate is always recomputed from the entries; it is never
    assigned from a server value directly.
    """

    def __init__(
        self,
        block_list: BlockList,
        api: ChatApi,
        clock: Clock | None = None,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._block_list = block_list
        self._api = api
        self._clock = clock or SystemClock()
        self._on_change = on_change
        self._entries: dict[int, UnreadEntry] = {}
        self._total = 0

    @property
    def total(self) -> int:
        return self._total

    def entries(self) -> list[UnreadEntry]:
        return list(self._entries.values())

    def count_for(self, peer_id: int) -> int:
        entry = self._entries.get(peer_id)
        return entry.count if entry else 0

    def increment(self, peer_id: int, username: str) -> UnreadEntry:
        current = self._entries.get(peer_id)
        entry = UnreadEntry(
            peer_id=peer_id,
            username=username or (current.username if current else ""),
            count=(current.count if current else 0) + 1,
            last_message_time=self._clock.now(),
        )
        self._entries[peer_id] = entry
        self._changed()
        return entry

    def mark_read(self, peer_id: int) -> int:
        """Drop the peer's entry locally and return how many were unread.

        The server is told separately via ``confirm_read``; local state does
        not wait for it.
        """
        entry = self._entries.pop(peer_id, None)
        if entry is None:
            return 0
        self._changed()
        return entry.count

    async def confirm_read(self, peer_id: int) -> None:
        try:
            server_total = await self._api.mark_read(peer_id)
        except TransportError:
            logger.warning(
                "Mark-read confirmation failed for peer %s, keeping local state until next refresh",
                peer_id,
                exc_info=True,
            )
            return
        if server_total != self._total:
            logger.info(
                "Server unread total %d differs from local %d, refreshing",
                server_total,
                self._total,
            )
            await self.refresh()

    def clear(self, peer_id: int) -> None:
        if self._entries.pop(peer_id, None) is not None:
            self._changed()

    def reconcile(self, snapshot: UnreadSnapshotEvent) -> None:
        """Replace all entries from a server snapshot, skipping blocked peers."""
        if snapshot.unread_counts is None:
            logger.debug("Unread snapshot without per-peer counts ignored")
            return
        entries: dict[int, UnreadEntry] = {}
        for item in snapshot.unread_counts:
            if item.count <= 0 or self._block_list.is_blocked(item.peer_id):
                continue
            entries[item.peer_id] = UnreadEntry(
                peer_id=item.peer_id,
                username=item.username,
                count=item.count,
                last_message_time=item.last_message_time,
            )
        self._entries = entries
        self._changed()
        if snapshot.total_unread_count is not None and snapshot.total_unread_count != self._total:
            logger.debug(
                "Server total %d differs from recomputed %d after reconcile",
                snapshot.total_unread_count,
                self._total,
            )

    async def refresh(self) -> None:
        try:
            snapshot = await self._api.fetch_unread_counts()
        except TransportError:
            logger.exception("Failed to load unread counts")
            return
        self.reconcile(snapshot)

    def recompute_total(self) -> int:
        self._total = sum(e.count for e in self._entries.values())
        return self._total

    def reset(self) -> None:
        self._entries.clear()
        self._total = 0

    def _changed(self) -> None:
        self.recompute_total()
        if self._on_change is not None:
            self._on_change()
