from __future__ import annotations

from typing import TYPE_CHECKING

from chat_client.application.exceptions import BlockedPeerError, ValidationError
from chat_client.domain.entities.message import Message

if TYPE_CHECKING:
    from chat_client.services.block_list import BlockList

MESSAGE_MAX_CHARS = 500


def validate_outgoing(text: str, *, max_chars: int = MESSAGE_MAX_CHARS) -> str:
    """Return the trimmed message text or raise ValidationError.

    An empty message raises with an empty detail: the caller drops it silently.
    """
    content = (text or "").strip()
    if not content:
        raise ValidationError("")
    if len(content) > max_chars:
        raise ValidationError(f"Message too long (max {max_chars} characters)")
    return content


def assert_not_blocked(block_list: BlockList, peer_id: int) -> None:
    if block_list.is_blocked(peer_id):
        raise BlockedPeerError("You cannot chat with a blocked user")


def resolve_peer(message: Message, self_id: int | None) -> int | None:
    """The other party of a private message: whichever side is not us."""
    if message.sender_id == self_id:
        return message.recipient_id
    return message.sender_id
