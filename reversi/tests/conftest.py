"""
Pytest fixtures for Reversi tests.
"""

import pytest

from ..engine_core.state import Board, Cell, GameState
from ..bots.service import MockOpponentConfig, MockOpponentService
from ..session import FallbackPolicy, GameLoop, SessionRegistry


_CELLS = {".": Cell.EMPTY, "B": Cell.BLACK, "W": Cell.WHITE}


def _board_from_rows(rows: list[str]) -> Board:
    """Build a board from up to 8 strings of 'B', 'W' and '.'; missing rows are empty."""
    board = Board()
    for r, row in enumerate(rows):
        for c, ch in enumerate(row):
            board.cells[r][c] = _CELLS[ch]
    return board


@pytest.fixture
def board_from_rows():
    """Factory turning text rows into a Board."""
    return _board_from_rows


@pytest.fixture
def initial_state() -> GameState:
    """A game at the standard starting position."""
    return GameState(game_id="test_game")


@pytest.fixture
def mock_service() -> MockOpponentService:
    """Mock AI that answers instantly with the first legal move."""
    return MockOpponentService(MockOpponentConfig(response_time_ms=0))


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry(max_sessions=10)


@pytest.fixture
def game_loop(registry, mock_service) -> GameLoop:
    """Orchestrator over the mock AI, no fallback, no back-off."""
    return GameLoop(
        registry,
        FallbackPolicy(primary=mock_service, enable_fallback=False, max_attempts=3, retry_delay_ms=0),
    )
