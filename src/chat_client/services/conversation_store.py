from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from chat_client.domain.entities.message import Message
from chat_client.domain.entities.selection import ConversationSelection
from chat_client.services.block_list import BlockList

logger = logging.getLogger(__name__)

GLOBAL_FEED_CAPACITY = 50


class ConversationStore:
    """Broadcast feed plus one private feed per peer.

    Messages from blocked senders are rejected on the way in, so no feed
    ever holds one.
    """

    def __init__(self, block_list: BlockList, *, capacity: int = GLOBAL_FEED_CAPACITY) -> None:
        self._block_list = block_list
        self._capacity = capacity
        self._global: deque[Message] = deque(maxlen=capacity)
        self._private: dict[int, list[Message]] = {}

    def append_global(self, message: Message) -> bool:
        if self._block_list.is_blocked(message.sender_id):
            logger.debug("Dropped global message %s from blocked sender %s", message.id, message.sender_id)
            return False
        self._global.append(message)
        return True

    def append_private(self, peer_id: int, message: Message) -> bool:
        if self._block_list.is_blocked(peer_id) or self._block_list.is_blocked(message.sender_id):
            logger.debug("Dropped private message %s for blocked peer %s", message.id, peer_id)
            return False
        self._private.setdefault(peer_id, []).append(message)
        return True

    def replace_global(self, messages: Iterable[Message]) -> None:
        self._global = deque(
            (m for m in messages if not self._block_list.is_blocked(m.sender_id)),
            maxlen=self._capacity,
        )

    def replace_private(self, peer_id: int, messages: Iterable[Message]) -> bool:
        """Swap in a freshly loaded history page; refused once the peer is blocked."""
        if self._block_list.is_blocked(peer_id):
            self._private.pop(peer_id, None)
            return False
        self._private[peer_id] = [m for m in messages if not self._block_list.is_blocked(m.sender_id)]
        return True

    def get_active(self, selection: ConversationSelection) -> list[Message]:
        if selection.is_global:
            return list(self._global)
        if selection.peer_id is None:
            return []
        return list(self._private.get(selection.peer_id, ()))

    def global_feed(self) -> tuple[Message, ...]:
        return tuple(self._global)

    def private_feed(self, peer_id: int) -> tuple[Message, ...] | None:
        feed = self._private.get(peer_id)
        return tuple(feed) if feed is not None else None

    def peers(self) -> list[int]:
        return list(self._private)

    def prune_blocked(self) -> None:
        """Drop everything the current blocklist forbids."""
        before = len(self._global)
        self._global = deque(
            (m for m in self._global if not self._block_list.is_blocked(m.sender_id)),
            maxlen=self._capacity,
        )
        for peer_id in [p for p in self._private if self._block_list.is_blocked(p)]:
            del self._private[peer_id]
            logger.debug("Dropped private feed for blocked peer %s", peer_id)
        if len(self._global) != before:
            logger.debug("Pruned %d global messages from blocked senders", before - len(self._global))

    def clear_peer(self, peer_id: int) -> None:
        self._private.pop(peer_id, None)

    def clear_all(self) -> None:
        self._global.clear()
        self._private.clear()
