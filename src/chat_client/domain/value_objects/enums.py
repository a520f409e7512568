from __future__ import annotations

from enum import StrEnum


class ChannelType(StrEnum):
    GLOBAL = "global"
    PRIVATE = "private"


class MessageType(StrEnum):
    TEXT = "text"
    GAME_INVITE = "game_invite"
    TOURNAMENT_ANNOUNCEMENT = "tournament_announcement"
    TOURNAMENT_INVITE = "tournament_invite"
