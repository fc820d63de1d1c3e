"""
Tests for the battle orchestrator and fallback policy.

Tests:
- Human move and AI reply
- Turn, busy and finished checks
- Passes and game end
- Concurrent moves on one session
- Fallback to the secondary AI and retry exhaustion
"""

import asyncio

import pytest

from ..errors import (
    GameFinishedError,
    InvalidMoveError,
    NotYourTurnError,
    OpponentBusyError,
    OpponentThinkingError,
    SessionNotFoundError,
)
from ..engine_core.state import GameState, Player, Position
from ..engine_core.action_generator import legal_moves
from ..bots.policy import Difficulty
from ..bots.service import LocalOpponentService, MockOpponentConfig, MockOpponentService
from ..session import FallbackPolicy, GameLoop


def _failing_mock() -> MockOpponentService:
    return MockOpponentService(MockOpponentConfig(available=False))


def _set_board(registry, session_id, board, player=Player.BLACK):
    session = registry.get(session_id)
    session.game_state = GameState(game_id=session_id, board=board, current_player=player)
    registry.update(session)


class TestPlayMove:
    """Tests for a normal turn."""

    def test_move_and_reply(self, registry, game_loop, mock_service):
        """Human (2,3) flips (3,3); mock AI answers with its first legal move."""
        session_id = registry.create()

        result = asyncio.run(game_loop.play_move(session_id, Position(2, 3)))

        assert result.flipped == frozenset({Position(3, 3)})
        assert len(result.opponent_moves) == 1
        assert result.opponent_moves[0].record.position == Position(2, 2)
        assert result.opponent_moves[0].record.player is Player.WHITE
        assert result.message == "Move successful"
        assert mock_service.call_count == 1

        session = registry.get(session_id)
        assert session.game_state.move_count == 2
        assert session.game_state.current_player is Player.BLACK
        assert session.game_state.score() == (3, 3)
        assert not session.opponent_thinking
        assert session.thinking_times == {1: 0}

    def test_invalid_move_leaves_session(self, registry, game_loop, mock_service):
        session_id = registry.create()

        with pytest.raises(InvalidMoveError):
            asyncio.run(game_loop.play_move(session_id, Position(0, 0)))

        session = registry.get(session_id)
        assert session.game_state.move_count == 0
        assert session.game_state.score() == (2, 2)
        assert mock_service.call_count == 0

    def test_unknown_session(self, game_loop):
        with pytest.raises(SessionNotFoundError):
            asyncio.run(game_loop.play_move("missing", Position(2, 3)))

    def test_busy(self, registry, game_loop):
        session_id = registry.create()
        registry.set_thinking(session_id, True)

        with pytest.raises(OpponentBusyError):
            asyncio.run(game_loop.play_move(session_id, Position(2, 3)))

    def test_not_your_turn(self, registry, game_loop, initial_state):
        session_id = registry.create()
        _set_board(registry, session_id, initial_state.board, player=Player.WHITE)

        with pytest.raises(NotYourTurnError):
            asyncio.run(game_loop.play_move(session_id, Position(2, 2)))

    def test_finished(self, registry, game_loop):
        session_id = registry.create()
        session = registry.get(session_id)
        session.game_state.finish(None)
        registry.update(session)

        with pytest.raises(GameFinishedError):
            asyncio.run(game_loop.play_move(session_id, Position(2, 3)))


class TestPassesAndEnd:
    """Tests for turns that end the game or skip the AI."""

    def test_human_move_ends_game(self, registry, game_loop, mock_service, board_from_rows):
        """No AI call once the game is over."""
        session_id = registry.create()
        _set_board(registry, session_id, board_from_rows(["BW."]))

        result = asyncio.run(game_loop.play_move(session_id, Position(0, 2)))

        assert result.game_over
        assert result.session.game_state.winner is Player.BLACK
        assert result.message == "Game over! Winner: black"
        assert result.opponent_moves == []
        assert mock_service.call_count == 0

    def test_ai_must_pass(self, registry, game_loop, mock_service, board_from_rows):
        """AI has no reply: the human moves again."""
        session_id = registry.create()
        board = board_from_rows(["BW.", "", "", "", "", "", "", "BW."])
        _set_board(registry, session_id, board)

        result = asyncio.run(game_loop.play_move(session_id, Position(0, 2)))

        assert not result.game_over
        assert result.message == "AI has no valid moves, your turn again"
        assert result.session.game_state.current_player is Player.BLACK
        assert mock_service.call_count == 0

    def test_full_game(self, registry, game_loop):
        """Playing first legal moves reaches a consistent finished game."""
        session_id = registry.create()

        async def play():
            for _ in range(64):
                session = registry.get(session_id)
                state = session.game_state
                if state.is_finished:
                    return session
                move = legal_moves(state.board, state.current_player)[0]
                await game_loop.play_move(session_id, move)
            return registry.get(session_id)

        session = asyncio.run(play())
        state = session.game_state

        assert state.is_finished
        black, white = state.score()
        assert state.final_score == (black, white)
        if black > white:
            assert state.winner is Player.BLACK
        elif white > black:
            assert state.winner is Player.WHITE
        else:
            assert state.winner is None
        assert not session.opponent_thinking


class TestConcurrency:
    """Tests for racing moves on one session."""

    def test_concurrent_moves(self, registry):
        """Exactly one of K simultaneous moves wins; the rest fail cleanly."""
        slow_ai = MockOpponentService(MockOpponentConfig(response_time_ms=20))
        loop = GameLoop(registry, FallbackPolicy(primary=slow_ai, enable_fallback=False, retry_delay_ms=0))
        session_id = registry.create()
        k = 5

        async def race():
            return await asyncio.gather(
                *(loop.play_move(session_id, Position(2, 3)) for _ in range(k)),
                return_exceptions=True,
            )

        results = asyncio.run(race())

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == k - 1
        assert all(isinstance(f, (NotYourTurnError, OpponentBusyError)) for f in failures)

        state = registry.get(session_id).game_state
        assert state.move_count == 2
        assert sum(state.score()) == 6
        assert slow_ai.call_count == 1

    def test_independent_sessions(self, registry, game_loop):
        ids = [registry.create() for _ in range(3)]

        async def play_all():
            return await asyncio.gather(*(game_loop.play_move(i, Position(2, 3)) for i in ids))

        results = asyncio.run(play_all())

        assert all(r.session.game_state.move_count == 2 for r in results)


class TestFallback:
    """Tests for fallback and retry."""

    def test_secondary_answers(self, registry):
        """Primary always fails, secondary succeeds within the first attempt."""
        primary = _failing_mock()
        secondary = MockOpponentService(MockOpponentConfig(response_time_ms=0, fixed_move=Position(2, 4)))
        loop = GameLoop(
            registry,
            FallbackPolicy(primary=primary, secondary=secondary, max_attempts=3, retry_delay_ms=0),
        )
        session_id = registry.create()

        result = asyncio.run(loop.play_move(session_id, Position(2, 3)))

        assert result.opponent_moves[0].record.position == Position(2, 4)
        assert primary.call_count == 1
        assert secondary.call_count == 1

    def test_retry_exhaustion(self, registry, caplog):
        """Both fail: 3 primary attempts, the human move is kept."""
        primary = _failing_mock()
        secondary = _failing_mock()
        loop = GameLoop(
            registry,
            FallbackPolicy(primary=primary, secondary=secondary, max_attempts=3, retry_delay_ms=0),
        )
        session_id = registry.create()

        with pytest.raises(OpponentThinkingError) as exc_info:
            asyncio.run(loop.play_move(session_id, Position(2, 3)))

        assert exc_info.value.attempts == 3
        assert "unavailable" in exc_info.value.details
        assert primary.call_count == 3
        assert secondary.call_count == 2
        assert "attempt 1/3" in caplog.text

        session = registry.get(session_id)
        assert session.game_state.move_count == 1
        assert session.game_state.move_history[0].position == Position(2, 3)
        assert session.game_state.current_player is Player.WHITE
        assert not session.opponent_thinking

    def test_retry_without_fallback(self, registry):
        """With fallback disabled the primary alone is retried."""
        primary = _failing_mock()
        secondary = MockOpponentService(MockOpponentConfig(response_time_ms=0))
        loop = GameLoop(
            registry,
            FallbackPolicy(
                primary=primary, secondary=secondary, enable_fallback=False,
                max_attempts=2, retry_delay_ms=0,
            ),
        )
        session_id = registry.create()

        with pytest.raises(OpponentThinkingError):
            asyncio.run(loop.play_move(session_id, Position(2, 3)))

        assert primary.call_count == 2
        assert secondary.call_count == 0

    def test_primary_recovers(self, initial_state):
        """A primary that comes back within the attempts is used."""
        primary = _failing_mock()
        policy = FallbackPolicy(primary=primary, enable_fallback=False, max_attempts=3, retry_delay_ms=50)

        async def run():
            task = asyncio.create_task(policy.calculate_move(initial_state, Difficulty.EASY))
            await asyncio.sleep(0.02)
            primary.config.available = True
            primary.config.response_time_ms = 0
            return await task

        move = asyncio.run(run())

        assert move.position == Position(2, 3)
        assert primary.call_count == 2

    def test_resume_after_failure(self, registry):
        """After exhaustion the AI reply can be re-run."""
        primary = _failing_mock()
        loop = GameLoop(registry, FallbackPolicy(primary=primary, enable_fallback=False, retry_delay_ms=0))
        session_id = registry.create()

        with pytest.raises(OpponentThinkingError):
            asyncio.run(loop.play_move(session_id, Position(2, 3)))
        with pytest.raises(NotYourTurnError):
            asyncio.run(loop.play_move(session_id, Position(2, 2)))

        primary.config.available = True
        primary.config.response_time_ms = 0
        result = asyncio.run(loop.resume_opponent(session_id))

        assert len(result.opponent_moves) == 1
        assert result.session.game_state.current_player is Player.BLACK
        assert result.session.game_state.move_count == 2

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            FallbackPolicy(primary=_failing_mock(), max_attempts=0)


class TestDifficultyAndHistory:
    """Tests for difficulty changes and the move log."""

    def test_change_difficulty(self, registry, game_loop):
        session_id = registry.create()

        session = game_loop.change_difficulty(session_id, Difficulty.HARD)

        assert session.difficulty is Difficulty.HARD
        assert registry.get(session_id).difficulty is Difficulty.HARD

    def test_change_while_thinking(self, registry, game_loop):
        session_id = registry.create()
        registry.set_thinking(session_id, True)

        with pytest.raises(OpponentBusyError):
            game_loop.change_difficulty(session_id, Difficulty.HARD)

    def test_history(self, registry, game_loop):
        session_id = registry.create()
        asyncio.run(game_loop.play_move(session_id, Position(2, 3)))

        history = game_loop.history(session_id)

        assert [h.record.player for h in history] == [Player.BLACK, Player.WHITE]
        assert history[0].thinking_time_ms is None
        assert history[1].thinking_time_ms == 0

    def test_local_ai_end_to_end(self, registry):
        loop = GameLoop(registry, FallbackPolicy(primary=LocalOpponentService(fast=True)))
        session_id = registry.create(Difficulty.MEDIUM)

        result = asyncio.run(loop.play_move(session_id, Position(2, 3)))

        assert len(result.opponent_moves) == 1
        assert result.session.game_state.current_player is Player.BLACK
