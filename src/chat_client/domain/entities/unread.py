from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class UnreadEntry:
    peer_id: int
    username: str
    count: int
    last_message_time: datetime
