"""
Session Registry - Creates and manages battle sessions.

LIFECYCLE:
1. Client creates a battle -> registry admits it (or refuses at the ceiling)
2. During the game:
   - Callers get() a private copy, mutate it, and update() it back
   - The opponent_thinking flag marks a reply in flight
3. Client deletes the battle, or the idle sweep removes it

PERSISTENCE RULES:
- In-memory only, nothing survives a restart

CONCURRENCY:
- Membership changes (create, remove, sweep) take the registry lock briefly
- Reads and writes of one session take that session's own lock, so
  operations on different sessions never wait on each other
"""

from __future__ import annotations
from collections import Counter
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any
import asyncio
import logging
import threading
import time
import uuid

from ..errors import AdmissionDeniedError, SessionNotFoundError
from ..engine_core.state import GameState, Player
from ..bots.policy import Difficulty

logger = logging.getLogger(__name__)


HUMAN_PLAYER = Player.BLACK
OPPONENT_PLAYER = Player.WHITE

DEFAULT_MAX_SESSIONS = 100
DEFAULT_SESSION_TIMEOUT_SECONDS = 30 * 60


@dataclass
class Session:
    """
    One human-versus-computer game.

    The human always plays BLACK and moves first; the opponent plays WHITE.
    """
    session_id: str
    game_state: GameState
    difficulty: Difficulty = Difficulty.EASY
    opponent_thinking: bool = False
    created_at: float = field(default_factory=time.time)
    last_activity_at: float = field(default_factory=time.time)

    # Opponent think time in ms, keyed by index into game_state.move_history
    thinking_times: dict[int, int] = field(default_factory=dict)

    @property
    def is_finished(self) -> bool:
        return self.game_state.is_finished

    def is_human_turn(self) -> bool:
        return self.game_state.current_player is HUMAN_PLAYER

    def touch(self):
        self.last_activity_at = time.time()


@dataclass
class SessionStats:
    """Registry snapshot for monitoring."""
    total_sessions: int
    max_sessions: int
    thinking_sessions: int
    difficulty_counts: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_sessions": self.total_sessions,
            "max_sessions": self.max_sessions,
            "thinking_sessions": self.thinking_sessions,
            "difficulty_counts": dict(self.difficulty_counts),
        }


@dataclass
class _Entry:
    session: Session
    lock: threading.Lock = field(default_factory=threading.Lock)


class SessionRegistry:
    """
    Manages battle sessions.

    Responsibilities:
    - Admission control (at most max_sessions live sessions)
    - Copy-in/copy-out access to each session
    - Idle expiry
    - The per-session "opponent thinking" flag
    """

    def __init__(
        self,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        session_timeout_seconds: float = DEFAULT_SESSION_TIMEOUT_SECONDS,
    ):
        self.max_sessions = max_sessions
        self.session_timeout_seconds = session_timeout_seconds
        self._sessions: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def _entry(self, session_id: str) -> _Entry:
        with self._lock:
            entry = self._sessions.get(session_id)
        if entry is None:
            raise SessionNotFoundError(session_id)
        return entry

    def create(self, difficulty: Difficulty = Difficulty.EASY) -> str:
        """
        Admit a new session with a fresh board.

        Raises:
            AdmissionDeniedError: registry is full
        """
        with self._lock:
            if len(self._sessions) >= self.max_sessions:
                raise AdmissionDeniedError(self.max_sessions)
            session_id = str(uuid.uuid4())
            session = Session(
                session_id=session_id,
                game_state=GameState(game_id=session_id),
                difficulty=Difficulty(difficulty),
            )
            self._sessions[session_id] = _Entry(session=session)
            count = len(self._sessions)

        logger.info(
            "Created session %s (difficulty=%s, %d/%d live)",
            session_id, session.difficulty.value, count, self.max_sessions,
        )
        return session_id

    def get(self, session_id: str) -> Session:
        """
        Private copy of a session.

        Raises:
            SessionNotFoundError: unknown id
        """
        entry = self._entry(session_id)
        with entry.lock:
            return deepcopy(entry.session)

    def update(self, session: Session):
        """
        Write a session back.

        Raises:
            SessionNotFoundError: the session was removed meanwhile
        """
        entry = self._entry(session.session_id)
        with entry.lock:
            entry.session = deepcopy(session)

    def remove(self, session_id: str) -> Session:
        """
        Remove a session and return its final state.

        Raises:
            SessionNotFoundError: unknown id
        """
        with self._lock:
            entry = self._sessions.pop(session_id, None)
        if entry is None:
            raise SessionNotFoundError(session_id)
        logger.info("Removed session %s", session_id)
        return entry.session

    def exists(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def list(self) -> list[Session]:
        """Snapshot copies of every live session."""
        with self._lock:
            entries = list(self._sessions.values())
        sessions = []
        for entry in entries:
            with entry.lock:
                sessions.append(deepcopy(entry.session))
        return sessions

    def idle_sweep(self, now: float | None = None) -> int:
        """
        Remove sessions with no activity within the timeout.

        Returns the number of sessions removed.
        """
        cutoff = (now if now is not None else time.time()) - self.session_timeout_seconds
        with self._lock:
            expired = [
                sid for sid, entry in self._sessions.items()
                if entry.session.last_activity_at < cutoff
            ]
            for sid in expired:
                del self._sessions[sid]

        if expired:
            logger.info("Idle sweep removed %d session(s)", len(expired))
        return len(expired)

    def set_thinking(self, session_id: str, thinking: bool):
        entry = self._entry(session_id)
        with entry.lock:
            entry.session.opponent_thinking = thinking

    def is_thinking(self, session_id: str) -> bool:
        entry = self._entry(session_id)
        with entry.lock:
            return entry.session.opponent_thinking

    def stats(self) -> SessionStats:
        sessions = self.list()
        difficulties = Counter(s.difficulty.value for s in sessions)
        return SessionStats(
            total_sessions=len(sessions),
            max_sessions=self.max_sessions,
            thinking_sessions=sum(1 for s in sessions if s.opponent_thinking),
            difficulty_counts=dict(difficulties),
        )

    async def run_idle_sweeper(self, interval_seconds: float):
        """
        Sweep forever, once per interval.

        Runs as a background task; cancel it to stop.
        """
        logger.info(
            "Idle sweeper started (interval=%ss, timeout=%ss)",
            interval_seconds, self.session_timeout_seconds,
        )
        while True:
            await asyncio.sleep(interval_seconds)
            self.idle_sweep()
