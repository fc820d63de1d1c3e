"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the exact contract between clients and the engine.

Error Codes:
- GAME_NOT_FOUND: Session does not exist or has expired
- INVALID_MOVE: Target square is occupied or captures nothing
- INVALID_POSITION: Row or column outside 0-7
- NOT_PLAYER_TURN: The AI is to move
- OPPONENT_BUSY: The AI is still thinking about its reply
- GAME_ALREADY_FINISHED: No more moves can be made
- MAX_SESSIONS_REACHED: Server is at its session ceiling
- AI_THINKING_ERROR: The AI failed to reply after every retry
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..bots.policy import Difficulty


# =============================================================================
# Enums
# =============================================================================

class PlayerColor(str, Enum):
    """Stone colour. The human plays black."""
    BLACK = "black"
    WHITE = "white"


class BattleStatus(str, Enum):
    """Status of a battle."""
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    FINISHED = "finished"


class ErrorCode(str, Enum):
    """Structured error codes."""
    GAME_NOT_FOUND = "GAME_NOT_FOUND"
    INVALID_MOVE = "INVALID_MOVE"
    INVALID_POSITION = "INVALID_POSITION"
    NOT_PLAYER_TURN = "NOT_PLAYER_TURN"
    OPPONENT_BUSY = "OPPONENT_BUSY"
    INVALID_DIFFICULTY = "INVALID_DIFFICULTY"
    MAX_SESSIONS_REACHED = "MAX_SESSIONS_REACHED"
    AI_THINKING_ERROR = "AI_THINKING_ERROR"
    GAME_ALREADY_FINISHED = "GAME_ALREADY_FINISHED"
    AI_SERVICE_UNAVAILABLE = "AI_SERVICE_UNAVAILABLE"
    AI_ERROR = "AI_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Shared Models
# =============================================================================

class PositionInfo(BaseModel):
    """A board coordinate."""
    row: int
    col: int


class MoveInfo(BaseModel):
    """A move from the game log."""
    player: PlayerColor
    row: int
    col: int
    flipped: list[PositionInfo] = Field(default_factory=list)
    timestamp: float
    thinking_time_ms: Optional[int] = Field(None, description="Only set for AI moves")


class DifficultyInfo(BaseModel):
    """A selectable opponent strength."""
    level: Difficulty
    name: str
    description: str


class OpponentStatusInfo(BaseModel):
    """Status of one AI service."""
    service_type: str
    name: str
    available: bool
    supported_difficulties: list[Difficulty] = Field(default_factory=list)
    average_response_time_ms: Optional[float] = None
    call_count: int = 0


class SessionStatsInfo(BaseModel):
    """Registry counters."""
    total_sessions: int
    max_sessions: int
    thinking_sessions: int
    difficulty_counts: dict[str, int] = Field(default_factory=dict)


# =============================================================================
# Request Models
# =============================================================================

class CreateBattleRequest(BaseModel):
    """Start a new battle against the AI."""
    difficulty: Optional[Difficulty] = Field(
        None, description="AI strength; server default when omitted"
    )


class MoveRequest(BaseModel):
    """Place a stone."""
    row: int = Field(..., description="Row 0-7")
    col: int = Field(..., description="Column 0-7")


class ChangeDifficultyRequest(BaseModel):
    """Switch AI strength mid-game."""
    difficulty: Difficulty


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class BattleResponse(BaseModel):
    """Full view of one battle."""
    game_id: str
    board: list[list[Optional[PlayerColor]]] = Field(description="8x8 grid, null for empty")
    current_player: PlayerColor
    black_count: int
    white_count: int
    difficulty: Difficulty
    ai_thinking: bool
    status: BattleStatus
    winner: Optional[PlayerColor] = None
    valid_moves: list[PositionInfo] = Field(
        default_factory=list, description="Legal moves for the side to move; empty once finished"
    )
    move_count: int
    created_at: float
    last_activity_at: float


class MoveResponse(BaseModel):
    """Result of a human move and the AI's reply."""
    success: bool
    game_state: BattleResponse
    player_move: Optional[MoveInfo] = None
    ai_moves: list[MoveInfo] = Field(default_factory=list)
    message: str


class SessionSummary(BaseModel):
    """One line in the session list."""
    game_id: str
    difficulty: Difficulty
    status: BattleStatus
    current_player: PlayerColor
    move_count: int
    ai_thinking: bool
    created_at: float
    last_activity_at: float


class SessionListResponse(BaseModel):
    """Live battles."""
    sessions: list[SessionSummary]
    total: int
    max_sessions: int


class MoveHistoryResponse(BaseModel):
    """Ordered move log of a battle."""
    game_id: str
    moves: list[MoveInfo]
    total_moves: int


class DifficultiesResponse(BaseModel):
    """Available AI strengths."""
    difficulties: list[DifficultyInfo]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    opponent: OpponentStatusInfo
    fallback: Optional[OpponentStatusInfo] = None
    fallback_enabled: bool
    sessions: SessionStatsInfo
