"""
Session Module - Manages concurrent battle sessions.

A session is one human-versus-computer game:
- Admitted by the registry, up to a configured ceiling
- Holds the current game state and opponent difficulty
- Drives opponent replies through the fallback policy
- Removed on request or after sitting idle

Sessions are in-memory only.
"""

from .manager import (
    HUMAN_PLAYER,
    OPPONENT_PLAYER,
    Session,
    SessionRegistry,
    SessionStats,
)
from .fallback import FallbackPolicy
from .game_loop import GameLoop, HistoryEntry, OpponentReply, TurnResult

__all__ = [
    "HUMAN_PLAYER",
    "OPPONENT_PLAYER",
    "Session",
    "SessionRegistry",
    "SessionStats",
    "FallbackPolicy",
    "GameLoop",
    "HistoryEntry",
    "OpponentReply",
    "TurnResult",
]
