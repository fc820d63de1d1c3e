"""
Move Generator - Enumerates legal placements.

Used by:
- The opponent strategies (to pick a move)
- The API (to show valid moves to the client)
- The CLI (to prompt the human)
"""

from __future__ import annotations

from .state import Board, Player, Position, all_positions
from .reducer import is_legal, has_legal_moves


def legal_moves(board: Board, player: Player) -> list[Position]:
    """
    Every legal placement for player, in row-major order.

    An empty list means player must pass.
    """
    return [p for p in all_positions() if is_legal(board, player, p)]


def is_terminal(board: Board) -> bool:
    """Neither side can move."""
    return not has_legal_moves(board, Player.BLACK) and not has_legal_moves(board, Player.WHITE)
