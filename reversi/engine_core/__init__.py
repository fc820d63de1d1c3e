"""
Engine Core - Deterministic Reversi rules.

The engine:
1. Models the 8x8 board and the game state
2. Decides legality and computes flips along the eight rays
3. Applies placements via the reducer
4. Resolves forced passes and game end
"""

from .state import (
    BOARD_SIZE, Board, Cell, GameState, GameStatus, Player, Position, all_positions,
)
from .action import MoveRecord
from .reducer import (
    DIRECTIONS,
    advance_turn,
    apply_move,
    determine_winner,
    flipped_positions,
    has_legal_moves,
    is_legal,
)
from .action_generator import legal_moves, is_terminal

__all__ = [
    "BOARD_SIZE",
    "Board",
    "Cell",
    "GameState",
    "GameStatus",
    "Player",
    "Position",
    "all_positions",
    "MoveRecord",
    "DIRECTIONS",
    "advance_turn",
    "apply_move",
    "determine_winner",
    "flipped_positions",
    "has_legal_moves",
    "is_legal",
    "legal_moves",
    "is_terminal",
]
