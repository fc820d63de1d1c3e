"""
Game Loop - Drives one human move and the opponent's reply.

The loop:
1. Validate the human's move against the stored session
2. Apply it, switch the mover, resolve passes and game end
3. If the opponent is to move, raise the thinking flag and persist
4. Ask the fallback policy for opponent moves until the human can move
   again or the game ends
5. Clear the flag and persist, whatever happened in step 4

Steps 1-3 contain no suspension point, so on one event loop a competing
move either sees the finished human move or the raised flag. A human
move that was applied is never undone because the opponent failed.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
import logging

from ..errors import (
    GameFinishedError,
    NotYourTurnError,
    OpponentBusyError,
)
from ..engine_core.state import Position
from ..engine_core.action import MoveRecord
from ..engine_core.reducer import advance_turn, apply_move
from ..bots.policy import Difficulty
from .manager import OPPONENT_PLAYER, Session, SessionRegistry
from .fallback import FallbackPolicy

logger = logging.getLogger(__name__)


@dataclass
class OpponentReply:
    """One opponent placement made during a turn."""
    record: MoveRecord
    thinking_time_ms: int


@dataclass
class TurnResult:
    """
    Result of processing a human move.

    session is a snapshot taken after the turn was persisted.
    """
    session: Session
    player_move: Optional[MoveRecord] = None
    opponent_moves: list[OpponentReply] = field(default_factory=list)
    message: str = ""

    @property
    def flipped(self) -> frozenset[Position]:
        return self.player_move.flipped if self.player_move else frozenset()

    @property
    def game_over(self) -> bool:
        return self.session.is_finished


@dataclass
class HistoryEntry:
    """A move log entry with the opponent's think time, when it was an opponent move."""
    record: MoveRecord
    thinking_time_ms: Optional[int] = None


class GameLoop:
    """
    The battle orchestrator.

    Usage:
        loop = GameLoop(registry, FallbackPolicy(primary=LocalOpponentService()))
        result = await loop.play_move(session_id, Position(2, 3))

        if result.game_over:
            show_winner(result.session.game_state.winner)
    """

    def __init__(self, registry: SessionRegistry, fallback: FallbackPolicy):
        self.registry = registry
        self.fallback = fallback

    async def play_move(self, session_id: str, position: Position) -> TurnResult:
        """
        Apply the human's move, then drive the opponent's reply.

        Raises:
            SessionNotFoundError: unknown session
            GameFinishedError: game already over
            NotYourTurnError: opponent is to move
            OpponentBusyError: an opponent reply is in flight
            InvalidMoveError: illegal placement (session untouched)
            OpponentThinkingError: opponent failed after retries (human move kept)
        """
        session = self.registry.get(session_id)
        state = session.game_state

        if state.is_finished:
            raise GameFinishedError(context={"session_id": session_id})
        if not session.is_human_turn():
            raise NotYourTurnError()
        if session.opponent_thinking:
            raise OpponentBusyError()

        apply_move(state, position)
        player_move = state.move_history[-1]
        state.switch_player()
        advance_turn(state)
        session.touch()

        if state.is_finished:
            self.registry.update(session)
            return TurnResult(
                session=session, player_move=player_move, message=_game_over_message(session),
            )
        if session.is_human_turn():
            self.registry.update(session)
            return TurnResult(
                session=session,
                player_move=player_move,
                message="AI has no valid moves, your turn again",
            )

        session.opponent_thinking = True
        self.registry.update(session)

        replies = await self._drive_opponent(session)
        return TurnResult(
            session=session,
            player_move=player_move,
            opponent_moves=replies,
            message=_game_over_message(session) if session.is_finished else "Move successful",
        )

    async def resume_opponent(self, session_id: str) -> TurnResult:
        """
        Drive the opponent when it is stuck on its own turn.

        Used after an OpponentThinkingError left the session waiting on
        the opponent.

        Raises:
            SessionNotFoundError: unknown session
            GameFinishedError: game already over
            NotYourTurnError: it is the human's turn, not the opponent's
            OpponentBusyError: an opponent reply is in flight
            OpponentThinkingError: opponent failed after retries
        """
        session = self.registry.get(session_id)
        if session.is_finished:
            raise GameFinishedError(context={"session_id": session_id})
        if session.is_human_turn():
            raise NotYourTurnError("It's your turn, not the AI's")
        if session.opponent_thinking:
            raise OpponentBusyError()

        session.opponent_thinking = True
        self.registry.update(session)

        replies = await self._drive_opponent(session)
        return TurnResult(
            session=session,
            opponent_moves=replies,
            message=_game_over_message(session) if session.is_finished else "AI moved",
        )

    async def _drive_opponent(self, session: Session) -> list[OpponentReply]:
        """
        Play opponent moves until the human can move or the game ends.

        Expects the thinking flag already persisted; always clears it.
        """
        state = session.game_state
        replies: list[OpponentReply] = []
        try:
            while not state.is_finished and state.current_player is OPPONENT_PLAYER:
                reply = await self.fallback.calculate_move(state, session.difficulty)
                apply_move(state, reply.position)
                record = state.move_history[-1]
                session.thinking_times[state.move_count - 1] = reply.thinking_time_ms
                replies.append(OpponentReply(record=record, thinking_time_ms=reply.thinking_time_ms))
                state.switch_player()
                advance_turn(state)
                if state.current_player is OPPONENT_PLAYER and not state.is_finished:
                    logger.debug("Session %s: human must pass, AI moves again", session.session_id)
        finally:
            session.opponent_thinking = False
            session.touch()
            self.registry.update(session)

        logger.debug(
            "Session %s: AI played %d move(s)", session.session_id, len(replies),
        )
        return replies

    def change_difficulty(self, session_id: str, difficulty: Difficulty) -> Session:
        """
        Raises:
            SessionNotFoundError: unknown session
            OpponentBusyError: an opponent reply is in flight
        """
        session = self.registry.get(session_id)
        if session.opponent_thinking:
            raise OpponentBusyError("Cannot change difficulty while AI is thinking")
        session.difficulty = Difficulty(difficulty)
        session.touch()
        self.registry.update(session)
        logger.info("Session %s difficulty set to %s", session_id, session.difficulty.value)
        return session

    def history(self, session_id: str) -> list[HistoryEntry]:
        session = self.registry.get(session_id)
        return [
            HistoryEntry(record=record, thinking_time_ms=session.thinking_times.get(index))
            for index, record in enumerate(session.game_state.move_history)
        ]


def _game_over_message(session: Session) -> str:
    winner = session.game_state.winner
    if winner is None:
        return "Game over! It's a draw"
    return f"Game over! Winner: {winner.value}"
