"""
Reducer - Applies placements to game state.

The reducer is the single point of board mutation.
All placements must go through apply_move().

Design principles:
- Legality and flip computation are pure reads of the board
- apply_move validates before touching anything; a rejected move leaves
  the state exactly as it was
- Turn advancement is a separate step (advance_turn) run after the mover
  has been switched
"""

from __future__ import annotations
from typing import Optional
import logging

from ..errors import GameFinishedError, InvalidMoveError
from .state import Board, Cell, GameState, Player, Position, all_positions
from .action import MoveRecord

logger = logging.getLogger(__name__)


DIRECTIONS: tuple[tuple[int, int], ...] = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
)


def _captured_in_direction(
    board: Board, mover: Cell, start: Position, dr: int, dc: int
) -> list[Position]:
    """Opponent stones bracketed along one ray, or [] if the ray is not closed."""
    line: list[Position] = []
    current = start.offset(dr, dc)
    while current is not None:
        cell = board.get(current)
        if cell is Cell.EMPTY:
            return []
        if cell is mover:
            return line
        line.append(current)
        current = current.offset(dr, dc)
    return []


def flipped_positions(board: Board, player: Player, position: Position) -> frozenset[Position]:
    """
    Every stone a placement at position would capture.

    All eight rays are evaluated; a ray contributes only when a run of
    opponent stones is closed off by one of player's stones. An occupied
    target captures nothing.
    """
    if not board.is_empty(position):
        return frozenset()
    mover = player.to_cell()
    flipped: set[Position] = set()
    for dr, dc in DIRECTIONS:
        flipped.update(_captured_in_direction(board, mover, position, dr, dc))
    return frozenset(flipped)


def is_legal(board: Board, player: Player, position: Position) -> bool:
    """Empty target that brackets at least one opponent run."""
    if not board.is_empty(position):
        return False
    mover = player.to_cell()
    return any(
        _captured_in_direction(board, mover, position, dr, dc)
        for dr, dc in DIRECTIONS
    )


def has_legal_moves(board: Board, player: Player) -> bool:
    return any(is_legal(board, player, p) for p in all_positions())


def determine_winner(board: Board) -> Optional[Player]:
    """Side with more stones; None on a tie."""
    black, white = board.count_pieces()
    if black > white:
        return Player.BLACK
    if white > black:
        return Player.WHITE
    return None


def apply_move(state: GameState, position: Position) -> frozenset[Position]:
    """
    Place the current mover's stone at position and flip every capture.

    Appends a MoveRecord and returns the flip set. Does not switch the
    mover.

    Raises:
        GameFinishedError: state is already finished
        InvalidMoveError: target occupied or captures nothing
    """
    if state.is_finished:
        raise GameFinishedError(context={"game_id": state.game_id})

    player = state.current_player
    flipped = flipped_positions(state.board, player, position)
    if not flipped:
        raise InvalidMoveError(
            f"Position {position} is not a valid move for {player.value}",
            context={"row": position.row, "col": position.col},
        )

    cell = player.to_cell()
    state.board.set(position, cell)
    for captured in flipped:
        state.board.set(captured, cell)
    state.add_move(MoveRecord(player=player, position=position, flipped=flipped))

    logger.debug("%s played %s flipping %d", player.value, position, len(flipped))
    return flipped


def advance_turn(state: GameState) -> bool:
    """
    Resolve forced passes and game end for the current mover.

    - current mover has a legal move: nothing happens
    - otherwise the turn passes to the other side
    - if that side cannot move either, the game finishes with the winner

    Returns whether the state changed.
    """
    if state.is_finished:
        return False
    if has_legal_moves(state.board, state.current_player):
        return False

    state.switch_player()
    if not has_legal_moves(state.board, state.current_player):
        winner = determine_winner(state.board)
        state.finish(winner)
        logger.debug(
            "Game %s finished, winner=%s",
            state.game_id,
            winner.value if winner else "draw",
        )
    return True
