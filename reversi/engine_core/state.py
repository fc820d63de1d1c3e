"""
Game State - Board model and per-game state container.

Design principles:
- Board is a plain mutable 8x8 grid; copy() before speculative play
- GameState owns the board, the mover, the status and the move log
- Status transitions are explicit and tolerant: illegal requests are no-ops
- Serializable: to_dict() for logging and debugging
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, TYPE_CHECKING
from copy import deepcopy
from enum import Enum
import time

from ..errors import InvalidPositionError

if TYPE_CHECKING:
    from .action import MoveRecord


BOARD_SIZE = 8


class Cell(Enum):
    """Contents of a single square."""
    EMPTY = "empty"
    BLACK = "black"
    WHITE = "white"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]


_SYMBOLS = {Cell.EMPTY: ".", Cell.BLACK: "●", Cell.WHITE: "○"}


class Player(Enum):
    """A side in the game. BLACK moves first."""
    BLACK = "black"
    WHITE = "white"

    def opposite(self) -> Player:
        return Player.WHITE if self is Player.BLACK else Player.BLACK

    def to_cell(self) -> Cell:
        return Cell.BLACK if self is Player.BLACK else Cell.WHITE

    @property
    def ordinal(self) -> int:
        """Stable index used by deterministic move selection (BLACK=0, WHITE=1)."""
        return 0 if self is Player.BLACK else 1


class GameStatus(Enum):
    """Lifecycle of a game."""
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    FINISHED = "finished"


@dataclass(frozen=True, order=True)
class Position:
    """
    A validated board coordinate.

    Construction outside [0, 8) raises InvalidPositionError, so every
    Position in circulation is on the board. Ordering is row-major.
    """
    row: int
    col: int

    def __post_init__(self):
        if not (0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE):
            raise InvalidPositionError(self.row, self.col)

    def offset(self, dr: int, dc: int) -> Position | None:
        """Neighbouring position, or None when it would leave the board."""
        r, c = self.row + dr, self.col + dc
        if 0 <= r < BOARD_SIZE and 0 <= c < BOARD_SIZE:
            return Position(r, c)
        return None

    def __str__(self) -> str:
        return f"({self.row}, {self.col})"


def all_positions() -> list[Position]:
    """All 64 coordinates in row-major order."""
    return [Position(r, c) for r in range(BOARD_SIZE) for c in range(BOARD_SIZE)]


@dataclass
class Board:
    """8x8 grid of cells."""
    cells: list[list[Cell]] = field(
        default_factory=lambda: [[Cell.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    )

    @classmethod
    def initial(cls) -> Board:
        """Standard starting position: two stones of each colour on the diagonals."""
        board = cls()
        board.cells[3][3] = Cell.WHITE
        board.cells[3][4] = Cell.BLACK
        board.cells[4][3] = Cell.BLACK
        board.cells[4][4] = Cell.WHITE
        return board

    def get(self, position: Position) -> Cell:
        return self.cells[position.row][position.col]

    def set(self, position: Position, cell: Cell):
        self.cells[position.row][position.col] = cell

    def is_empty(self, position: Position) -> bool:
        return self.get(position) is Cell.EMPTY

    def count_pieces(self) -> tuple[int, int]:
        """Return (black, white) stone counts."""
        black = white = 0
        for row in self.cells:
            for cell in row:
                if cell is Cell.BLACK:
                    black += 1
                elif cell is Cell.WHITE:
                    white += 1
        return black, white

    def count(self, player: Player) -> int:
        black, white = self.count_pieces()
        return black if player is Player.BLACK else white

    def copy(self) -> Board:
        return Board(cells=[row.copy() for row in self.cells])

    def display(self) -> str:
        """Render the board as text, one row per line."""
        lines = ["  " + " ".join(str(c) for c in range(BOARD_SIZE))]
        for r, row in enumerate(self.cells):
            lines.append(f"{r} " + " ".join(cell.symbol for cell in row))
        return "\n".join(lines)

    def to_grid(self) -> list[list[Optional[str]]]:
        """Grid of "black"/"white"/None, for serialization."""
        return [
            [None if cell is Cell.EMPTY else cell.value for cell in row]
            for row in self.cells
        ]

    def __str__(self) -> str:
        return self.display()


@dataclass
class GameState:
    """
    Complete state of a single game.

    Callers are expected to switch the mover explicitly after each applied
    move; apply_move() never does it for them.
    """
    game_id: str
    board: Board = field(default_factory=Board.initial)
    current_player: Player = Player.BLACK
    status: GameStatus = GameStatus.IN_PROGRESS

    # Set only once status is FINISHED; winner None means a draw
    winner: Optional[Player] = None
    final_score: Optional[tuple[int, int]] = None

    move_history: list[MoveRecord] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @property
    def is_finished(self) -> bool:
        return self.status is GameStatus.FINISHED

    @property
    def is_in_progress(self) -> bool:
        return self.status is GameStatus.IN_PROGRESS

    @property
    def move_count(self) -> int:
        return len(self.move_history)

    def score(self) -> tuple[int, int]:
        return self.board.count_pieces()

    def touch(self):
        self.updated_at = time.time()

    def switch_player(self):
        self.current_player = self.current_player.opposite()
        self.touch()

    def add_move(self, record: MoveRecord):
        self.move_history.append(record)
        self.touch()

    def pause(self) -> bool:
        """IN_PROGRESS -> PAUSED. Returns whether the status changed."""
        if self.status is GameStatus.IN_PROGRESS:
            self.status = GameStatus.PAUSED
            self.touch()
            return True
        return False

    def resume(self) -> bool:
        """PAUSED -> IN_PROGRESS. Returns whether the status changed."""
        if self.status is GameStatus.PAUSED:
            self.status = GameStatus.IN_PROGRESS
            self.touch()
            return True
        return False

    def finish(self, winner: Optional[Player]) -> bool:
        """Enter the absorbing FINISHED state, recording the final tally."""
        if self.status is GameStatus.FINISHED:
            return False
        self.status = GameStatus.FINISHED
        self.winner = winner
        self.final_score = self.board.count_pieces()
        self.touch()
        return True

    def clone(self) -> GameState:
        """Deep copy of the state."""
        return deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        black, white = self.score()
        return {
            "game_id": self.game_id,
            "current_player": self.current_player.value,
            "status": self.status.value,
            "winner": self.winner.value if self.winner else None,
            "black_count": black,
            "white_count": white,
            "move_count": self.move_count,
        }
