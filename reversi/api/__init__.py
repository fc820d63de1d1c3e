"""
API Module - HTTP interface.

Exposes the engine via a REST API. A client:
1. Creates a battle at a chosen difficulty
2. Posts moves and receives the AI's replies
3. Reads the board, history and valid moves
4. Deletes the battle when done

All state is session-scoped and in-memory.
"""

from .schemas import (
    # Requests
    CreateBattleRequest,
    MoveRequest,
    ChangeDifficultyRequest,
    # Responses
    BattleResponse,
    MoveResponse,
    SessionListResponse,
    MoveHistoryResponse,
    DifficultiesResponse,
    HealthResponse,
    ErrorResponse,
    # Enums
    ErrorCode,
)
from .service import BattleService, build_battle_service
from .app import create_app

__all__ = [
    # Requests
    "CreateBattleRequest",
    "MoveRequest",
    "ChangeDifficultyRequest",
    # Responses
    "BattleResponse",
    "MoveResponse",
    "SessionListResponse",
    "MoveHistoryResponse",
    "DifficultiesResponse",
    "HealthResponse",
    "ErrorResponse",
    # Enums
    "ErrorCode",
    # Service
    "BattleService",
    "build_battle_service",
    "create_app",
]
