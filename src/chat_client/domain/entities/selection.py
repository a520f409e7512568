from __future__ import annotations

from dataclasses import dataclass

from chat_client.domain.value_objects.enums import ChannelType


@dataclass(frozen=True, slots=True)
class ConversationSelection:
    """The single active conversation view: global, or private with one peer."""

    kind: ChannelType
    peer_id: int | None = None

    @classmethod
    def global_feed(cls) -> ConversationSelection:
        return cls(kind=ChannelType.GLOBAL)

    @classmethod
    def private(cls, peer_id: int) -> ConversationSelection:
        return cls(kind=ChannelType.PRIVATE, peer_id=peer_id)

    @property
    def is_global(self) -> bool:
        return self.kind == ChannelType.GLOBAL

    def is_private_with(self, peer_id: int) -> bool:
        return self.kind == ChannelType.PRIVATE and self.peer_id == peer_id
