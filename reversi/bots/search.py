"""
Search Policies - Fixed-depth game tree search over the heuristic evaluator.

MinimaxPolicy explores the full tree to its depth; AlphaBetaPolicy prunes
branches that cannot change the result and so reaches deeper in the same
time. Both:
- score leaves with BoardEvaluator from the root mover's point of view
- search through forced passes (a pass costs one ply)
- keep the first move in row-major order among equal scores
"""

from __future__ import annotations
from dataclasses import dataclass
import math

from ..engine_core.state import Board, GameState, Player, Position
from ..engine_core.reducer import flipped_positions, has_legal_moves
from ..engine_core.action_generator import legal_moves
from .evaluator import BoardEvaluator, EvaluationWeights
from .policy import MoveDecision, OpponentPolicy


@dataclass
class _SearchStats:
    nodes: int = 0


def play_on_copy(board: Board, player: Player, position: Position) -> Board:
    """Board after player places at position. The input board is untouched."""
    child = board.copy()
    cell = player.to_cell()
    for captured in flipped_positions(board, player, position):
        child.set(captured, cell)
    child.set(position, cell)
    return child


class SearchPolicy(OpponentPolicy):
    """Shared plumbing for the depth-limited searches."""

    def __init__(self, depth: int, weights: EvaluationWeights | None = None):
        if depth < 1:
            raise ValueError("Search depth must be at least 1")
        self.depth = depth
        self.evaluator = BoardEvaluator(weights)

    def select_move(self, state: GameState) -> MoveDecision:
        moves = self._playable_moves(state)
        root = state.current_player
        stats = _SearchStats()

        best_move, best_score = self._search_root(state.board, root, moves, stats)
        return MoveDecision(
            position=best_move,
            explanation=f"{self.get_name()} depth {self.depth}",
            evaluation_score=best_score,
            depth_reached=self.depth,
            nodes_evaluated=stats.nodes,
        )

    def _search_root(
        self, board: Board, root: Player, moves: list[Position], stats: _SearchStats
    ) -> tuple[Position, float]:
        raise NotImplementedError


class MinimaxPolicy(SearchPolicy):
    """
    Plain minimax.

    Used for the MEDIUM tier.
    """

    def __init__(self, depth: int = 2, weights: EvaluationWeights | None = None):
        super().__init__(depth, weights)

    def _search_root(self, board, root, moves, stats):
        best_move = moves[0]
        best_score = -math.inf
        for move in moves:
            child = play_on_copy(board, root, move)
            score = self._minimax(child, root.opposite(), root, self.depth - 1, stats)
            if score > best_score:
                best_move, best_score = move, score
        return best_move, best_score

    def _minimax(self, board: Board, to_move: Player, root: Player, depth: int, stats: _SearchStats) -> float:
        stats.nodes += 1
        moves = legal_moves(board, to_move)
        if depth <= 0 or (not moves and not has_legal_moves(board, to_move.opposite())):
            return self.evaluator.evaluate(board, root)
        if not moves:
            return self._minimax(board, to_move.opposite(), root, depth - 1, stats)

        scores = (
            self._minimax(play_on_copy(board, to_move, m), to_move.opposite(), root, depth - 1, stats)
            for m in moves
        )
        return max(scores) if to_move is root else min(scores)


class AlphaBetaPolicy(SearchPolicy):
    """
    Minimax with alpha-beta pruning.

    Used for the HARD tier. Returns the same move as MinimaxPolicy at the
    same depth while visiting fewer nodes.
    """

    def __init__(self, depth: int = 4, weights: EvaluationWeights | None = None):
        super().__init__(depth, weights)

    def _search_root(self, board, root, moves, stats):
        best_move = moves[0]
        alpha = -math.inf
        for move in moves:
            child = play_on_copy(board, root, move)
            score = self._alphabeta(
                child, root.opposite(), root, self.depth - 1, alpha, math.inf, stats
            )
            if score > alpha:
                best_move, alpha = move, score
        return best_move, alpha

    def _alphabeta(
        self,
        board: Board,
        to_move: Player,
        root: Player,
        depth: int,
        alpha: float,
        beta: float,
        stats: _SearchStats,
    ) -> float:
        stats.nodes += 1
        moves = legal_moves(board, to_move)
        if depth <= 0 or (not moves and not has_legal_moves(board, to_move.opposite())):
            return self.evaluator.evaluate(board, root)
        if not moves:
            return self._alphabeta(board, to_move.opposite(), root, depth - 1, alpha, beta, stats)

        if to_move is root:
            value = -math.inf
            for m in moves:
                child = play_on_copy(board, to_move, m)
                value = max(value, self._alphabeta(child, to_move.opposite(), root, depth - 1, alpha, beta, stats))
                alpha = max(alpha, value)
                if alpha >= beta:
                    break
            return value

        value = math.inf
        for m in moves:
            child = play_on_copy(board, to_move, m)
            value = min(value, self._alphabeta(child, to_move.opposite(), root, depth - 1, alpha, beta, stats))
            beta = min(beta, value)
            if alpha >= beta:
                break
        return value
