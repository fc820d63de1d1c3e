"""
Opponent Policy - Interface for computer move selection.

An OpponentPolicy takes a game state and returns a decision for the
player to move. Decisions include:
- Which position to play
- Evaluation details (for status reporting and debugging)
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from ..errors import NoValidMovesError, StrategyError
from ..engine_core.state import GameState, Position
from ..engine_core.action_generator import legal_moves


class Difficulty(str, Enum):
    """Opponent strength tiers."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


_DESCRIPTIONS = {
    Difficulty.EASY: "AI makes random moves - good for beginners",
    Difficulty.MEDIUM: "AI uses basic strategy - moderate challenge",
    Difficulty.HARD: "AI uses deep lookahead - expert level",
}


@dataclass
class MoveDecision:
    """
    A move chosen by a policy.

    evaluation_score is from the mover's point of view.
    """
    position: Position
    explanation: str = ""
    evaluation_score: float = 0.0
    depth_reached: int = 0
    nodes_evaluated: int = 0


class OpponentPolicy(ABC):
    """
    Abstract base class for opponent policies.

    Every implementation returns a member of the mover's legal set and
    rejects finished games and forced passes before searching.
    """

    @abstractmethod
    def select_move(self, state: GameState) -> MoveDecision:
        """
        Select a move for state.current_player.

        Raises:
            StrategyError: the game is finished
            NoValidMovesError: the mover must pass
        """

    def get_name(self) -> str:
        """Get the policy's name/identifier."""
        return self.__class__.__name__

    def _playable_moves(self, state: GameState) -> list[Position]:
        if state.is_finished:
            raise StrategyError("Cannot calculate move for finished game")
        moves = legal_moves(state.board, state.current_player)
        if not moves:
            raise NoValidMovesError()
        return moves


class RandomPolicy(OpponentPolicy):
    """
    Pseudo-random policy - reproducible "random" choice.

    The index into the row-major legal set is derived from the move count
    and the mover, so the same state always yields the same move.

    Used for:
    - The EASY tier
    - Deterministic testing
    """

    def select_move(self, state: GameState) -> MoveDecision:
        moves = self._playable_moves(state)
        index = (state.move_count * 7 + state.current_player.ordinal * 3) % len(moves)
        return MoveDecision(
            position=moves[index],
            explanation="Selected pseudo-randomly",
            depth_reached=1,
            nodes_evaluated=len(moves),
        )
