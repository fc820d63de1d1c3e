"""
Moves - Records of applied placements.

A MoveRecord is appended to GameState.move_history for every placement.
Forced passes are not recorded; they only show up as two consecutive
records by the same player.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import time

from .state import Player, Position


@dataclass(frozen=True)
class MoveRecord:
    """An applied placement and the stones it captured."""
    player: Player
    position: Position
    flipped: frozenset[Position] = frozenset()
    timestamp: float = field(default_factory=time.time)

    @property
    def flip_count(self) -> int:
        return len(self.flipped)

    def to_dict(self) -> dict[str, Any]:
        return {
            "player": self.player.value,
            "row": self.position.row,
            "col": self.position.col,
            "flipped": [[p.row, p.col] for p in sorted(self.flipped)],
            "timestamp": self.timestamp,
        }
