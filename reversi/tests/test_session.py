"""
Tests for the session registry.

Tests:
- Admission control
- Copy-in/copy-out access
- Idle sweep and the background sweeper
- Thinking flag and stats
"""

import asyncio
import threading
import time

import pytest

from ..errors import AdmissionDeniedError, SessionNotFoundError
from ..engine_core.state import Player, Position
from ..engine_core.reducer import apply_move
from ..bots.policy import Difficulty
from ..session import SessionRegistry


class TestAdmission:
    """Tests for the session ceiling."""

    def test_ceiling(self):
        """N+1-th create fails; after one remove, create works again."""
        registry = SessionRegistry(max_sessions=3)
        ids = [registry.create() for _ in range(3)]

        with pytest.raises(AdmissionDeniedError) as exc_info:
            registry.create()
        assert exc_info.value.max_sessions == 3

        registry.remove(ids[0])
        assert registry.create()
        assert registry.count() == 3

    def test_concurrent_creates_respect_ceiling(self):
        registry = SessionRegistry(max_sessions=5)
        admitted = []
        denied = []

        def worker():
            try:
                admitted.append(registry.create())
            except AdmissionDeniedError:
                denied.append(1)

        threads = [threading.Thread(target=worker) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(admitted) == 5
        assert len(denied) == 15
        assert registry.count() == 5


class TestAccess:
    """Tests for get/update/remove."""

    def test_new_session(self, registry):
        session_id = registry.create(Difficulty.HARD)
        session = registry.get(session_id)

        assert session.session_id == session_id
        assert session.difficulty is Difficulty.HARD
        assert session.game_state.current_player is Player.BLACK
        assert session.game_state.score() == (2, 2)
        assert not session.opponent_thinking

    def test_get_returns_copy(self, registry):
        """Mutating a fetched session does not touch the stored one."""
        session_id = registry.create()
        session = registry.get(session_id)

        apply_move(session.game_state, Position(2, 3))

        assert registry.get(session_id).game_state.move_count == 0

    def test_update_writes_back(self, registry):
        session_id = registry.create()
        session = registry.get(session_id)
        apply_move(session.game_state, Position(2, 3))

        registry.update(session)

        assert registry.get(session_id).game_state.score() == (4, 1)

    def test_update_after_remove(self, registry):
        session_id = registry.create()
        session = registry.get(session_id)
        registry.remove(session_id)

        with pytest.raises(SessionNotFoundError):
            registry.update(session)

    def test_unknown_id(self, registry):
        with pytest.raises(SessionNotFoundError):
            registry.get("missing")
        with pytest.raises(SessionNotFoundError):
            registry.remove("missing")
        assert not registry.exists("missing")

    def test_list(self, registry):
        ids = {registry.create() for _ in range(3)}

        assert {s.session_id for s in registry.list()} == ids


class TestIdleSweep:
    """Tests for idle expiry."""

    def test_sweep_removes_idle(self):
        registry = SessionRegistry(session_timeout_seconds=60)
        stale = registry.create()
        fresh = registry.create()

        session = registry.get(stale)
        session.last_activity_at = time.time() - 120
        registry.update(session)

        assert registry.idle_sweep() == 1
        assert not registry.exists(stale)
        assert registry.exists(fresh)

    def test_sweep_keeps_active(self, registry):
        registry.create()

        assert registry.idle_sweep() == 0
        assert registry.count() == 1

    def test_background_sweeper(self):
        registry = SessionRegistry(session_timeout_seconds=0)
        registry.create()

        async def run():
            task = asyncio.create_task(registry.run_idle_sweeper(0.01))
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        assert registry.count() == 0


class TestThinkingFlag:
    """Tests for the reply-in-flight flag and stats."""

    def test_set_and_clear(self, registry):
        session_id = registry.create()

        registry.set_thinking(session_id, True)
        assert registry.is_thinking(session_id)
        assert registry.get(session_id).opponent_thinking

        registry.set_thinking(session_id, False)
        assert not registry.is_thinking(session_id)

    def test_unknown_session(self, registry):
        with pytest.raises(SessionNotFoundError):
            registry.set_thinking("missing", True)

    def test_stats(self, registry):
        first = registry.create(Difficulty.EASY)
        registry.create(Difficulty.EASY)
        registry.create(Difficulty.HARD)
        registry.set_thinking(first, True)

        stats = registry.stats()

        assert stats.total_sessions == 3
        assert stats.max_sessions == 10
        assert stats.thinking_sessions == 1
        assert stats.difficulty_counts == {"easy": 2, "hard": 1}
