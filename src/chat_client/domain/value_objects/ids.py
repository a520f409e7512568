from __future__ import annotations

from typing import NewType

ConversationId = NewType("ConversationId", int)

GLOBAL_CONVERSATION_ID = ConversationId(1)
