"""
Reversi Error Hierarchy

Every error the engine, the opponent services and the session layer raise
inherits from ReversiError, so the HTTP layer can translate them with a
single handler keyed on ``code``.

Usage:
    from reversi.errors import InvalidMoveError, ReversiError

    try:
        apply_move(state, position)
    except InvalidMoveError as e:
        logger.warning(f"Rejected move: {e.message}")
"""

from typing import Any

__all__ = [
    # Base error
    "ReversiError",
    # Configuration
    "ConfigError",
    # Game rules errors
    "InvalidPositionError",
    "InvalidMoveError",
    "GameFinishedError",
    # Session errors
    "AdmissionDeniedError",
    "SessionNotFoundError",
    "NotYourTurnError",
    "OpponentBusyError",
    "OpponentThinkingError",
    # Opponent service errors
    "OpponentError",
    "ServiceUnavailableError",
    "StrategyError",
    "NoValidMovesError",
    "ConfigurationError",
    "OpponentTimeoutError",
]


class ReversiError(Exception):
    """Base exception for all Reversi errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "REVERSI_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ConfigError(ReversiError):
    """Environment or settings value that cannot be used."""
    code: str = "CONFIG_ERROR"


# =============================================================================
# Game Rules Errors
# =============================================================================


class InvalidPositionError(ReversiError):
    """Coordinate outside the 8x8 board."""
    code: str = "INVALID_POSITION"

    def __init__(self, row: int, col: int):
        super().__init__(
            f"Position ({row}, {col}) is outside the board",
            context={"row": row, "col": col},
        )
        self.row = row
        self.col = col


class InvalidMoveError(ReversiError):
    """Placement that is occupied or captures nothing."""
    code: str = "INVALID_MOVE"


class GameFinishedError(ReversiError):
    """Move attempted after the game ended."""
    code: str = "GAME_ALREADY_FINISHED"

    def __init__(self, message: str = "Game is already finished", context: dict[str, Any] | None = None):
        super().__init__(message, context=context)


# =============================================================================
# Session Errors
# =============================================================================


class AdmissionDeniedError(ReversiError):
    """Registry is at its session ceiling."""
    code: str = "MAX_SESSIONS_REACHED"

    def __init__(self, max_sessions: int):
        super().__init__(
            f"Maximum number of sessions reached ({max_sessions})",
            context={"max_sessions": max_sessions},
        )
        self.max_sessions = max_sessions


class SessionNotFoundError(ReversiError):
    """Unknown or already removed session id."""
    code: str = "GAME_NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__(
            f"Game session {session_id} not found",
            context={"session_id": session_id},
        )
        self.session_id = session_id


class NotYourTurnError(ReversiError):
    """The human submitted a move while the opponent is to play."""
    code: str = "NOT_PLAYER_TURN"

    def __init__(self, message: str = "It's not your turn"):
        super().__init__(message)


class OpponentBusyError(ReversiError):
    """The opponent's reply is still in flight for this session."""
    code: str = "OPPONENT_BUSY"

    def __init__(self, message: str = "AI is currently thinking"):
        super().__init__(message)


class OpponentThinkingError(ReversiError):
    """Every attempt to obtain an opponent move failed.

    Attributes:
        details: Description of the last failure
        attempts: Number of attempts made before giving up
    """
    code: str = "AI_THINKING_ERROR"

    def __init__(self, details: str, attempts: int):
        super().__init__(
            f"AI failed to produce a move after {attempts} attempt(s): {details}",
            context={"attempts": attempts},
        )
        self.details = details
        self.attempts = attempts


# =============================================================================
# Opponent Service Errors
# =============================================================================


class OpponentError(ReversiError):
    """Base class for opponent service failures."""
    code: str = "AI_ERROR"


class ServiceUnavailableError(OpponentError):
    """The opponent service cannot take requests."""
    code: str = "AI_SERVICE_UNAVAILABLE"


class StrategyError(OpponentError):
    """The strategy could not compute a move."""
    code: str = "AI_STRATEGY_ERROR"


class NoValidMovesError(OpponentError):
    """The mover has no legal placement."""
    code: str = "AI_NO_VALID_MOVES"

    def __init__(self, message: str = "No valid moves available"):
        super().__init__(message)


class ConfigurationError(OpponentError):
    """The requested opponent service cannot be built."""
    code: str = "AI_CONFIGURATION_ERROR"


class OpponentTimeoutError(OpponentError):
    """The opponent did not answer within its time limit.

    Attributes:
        timeout_ms: The limit that was exceeded
    """
    code: str = "AI_TIMEOUT"

    def __init__(self, timeout_ms: int):
        super().__init__(
            f"AI service timed out after {timeout_ms}ms",
            context={"timeout_ms": timeout_ms},
        )
        self.timeout_ms = timeout_ms
