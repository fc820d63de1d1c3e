"""
Heuristic Evaluator - Scores board positions for the search opponents.

The evaluator assigns a numeric score to a board from one player's point
of view, based on:
- Material (stone difference)
- Corner control
- Edge control
- Mobility (legal move difference)

Weights can be adjusted to create different play styles.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..engine_core.state import BOARD_SIZE, Board, Cell, Player, Position
from ..engine_core.reducer import determine_winner, has_legal_moves
from ..engine_core.action_generator import legal_moves


CORNERS = (
    Position(0, 0),
    Position(0, BOARD_SIZE - 1),
    Position(BOARD_SIZE - 1, 0),
    Position(BOARD_SIZE - 1, BOARD_SIZE - 1),
)

# Top and bottom rows in full, left and right columns without the corners
EDGES = tuple(
    [Position(r, c) for r in (0, BOARD_SIZE - 1) for c in range(BOARD_SIZE)]
    + [Position(r, c) for r in range(1, BOARD_SIZE - 1) for c in (0, BOARD_SIZE - 1)]
)

WIN_SCORE = 10_000.0


@dataclass
class EvaluationWeights:
    """
    Weights for the heuristic evaluator.

    Higher values = more importance.
    """
    piece_count: float = 1.0
    corner_control: float = 10.0
    edge_control: float = 5.0
    mobility: float = 3.0


@dataclass
class BoardEvaluation:
    """
    Result of evaluating a board.
    """
    total_score: float
    feature_breakdown: dict[str, float] = field(default_factory=dict)


class BoardEvaluator:
    """
    Evaluates boards using weighted heuristics.

    Positive scores favour the player passed to evaluate().
    """

    def __init__(self, weights: EvaluationWeights | None = None):
        self.weights = weights or EvaluationWeights()

    def evaluate(self, board: Board, player: Player) -> float:
        return self.evaluate_detailed(board, player).total_score

    def evaluate_detailed(self, board: Board, player: Player) -> BoardEvaluation:
        opponent = player.opposite()

        if not has_legal_moves(board, player) and not has_legal_moves(board, opponent):
            return self._evaluate_terminal(board, player)

        features = {
            "piece_count": self._piece_score(board, player),
            "corner_control": self._control_score(board, player, CORNERS, 1.0),
            "edge_control": self._control_score(board, player, EDGES, 0.5),
            "mobility": float(
                len(legal_moves(board, player)) - len(legal_moves(board, opponent))
            ),
        }
        weighted = {
            "piece_count": features["piece_count"] * self.weights.piece_count,
            "corner_control": features["corner_control"] * self.weights.corner_control,
            "edge_control": features["edge_control"] * self.weights.edge_control,
            "mobility": features["mobility"] * self.weights.mobility,
        }
        return BoardEvaluation(total_score=sum(weighted.values()), feature_breakdown=weighted)

    def _evaluate_terminal(self, board: Board, player: Player) -> BoardEvaluation:
        diff = self._piece_score(board, player)
        winner = determine_winner(board)
        if winner is None:
            total = 0.0
        elif winner is player:
            total = WIN_SCORE + diff
        else:
            total = -WIN_SCORE + diff
        return BoardEvaluation(total_score=total, feature_breakdown={"terminal": total})

    def _piece_score(self, board: Board, player: Player) -> float:
        black, white = board.count_pieces()
        diff = black - white
        return float(diff if player is Player.BLACK else -diff)

    def _control_score(
        self, board: Board, player: Player, squares: tuple[Position, ...], unit: float
    ) -> float:
        mine = player.to_cell()
        score = 0.0
        for pos in squares:
            cell = board.get(pos)
            if cell is Cell.EMPTY:
                continue
            score += unit if cell is mine else -unit
        return score
