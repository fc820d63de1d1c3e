"""
FastAPI Application - REST API for human-versus-AI Reversi.

Endpoints:
    POST   /api/ai-battle                   Create battle
    GET    /api/ai-battle/difficulties      List AI strengths
    GET    /api/ai-battle/sessions          List live battles
    GET    /api/ai-battle/{id}              Get battle state
    DELETE /api/ai-battle/{id}              End battle
    POST   /api/ai-battle/{id}/move         Play a move, get the AI reply
    POST   /api/ai-battle/{id}/ai-move      Re-run a failed AI reply
    PUT    /api/ai-battle/{id}/difficulty   Change AI strength
    GET    /api/ai-battle/{id}/history      Move log
    GET    /health                          Service and AI status

The human always plays black. Every error is JSON with an explicit
error code (see schemas.ErrorCode).
"""

from typing import Optional
import asyncio
import contextlib
import logging

from .. import __version__
from ..config import Settings, configure_logging
from ..errors import ReversiError

logger = logging.getLogger(__name__)


# code -> (public error code, HTTP status)
_ERROR_MAP: dict[str, tuple[str, int]] = {
    "GAME_NOT_FOUND": ("GAME_NOT_FOUND", 404),
    "INVALID_MOVE": ("INVALID_MOVE", 400),
    "INVALID_POSITION": ("INVALID_POSITION", 400),
    "NOT_PLAYER_TURN": ("NOT_PLAYER_TURN", 403),
    "OPPONENT_BUSY": ("OPPONENT_BUSY", 409),
    "MAX_SESSIONS_REACHED": ("MAX_SESSIONS_REACHED", 429),
    "AI_THINKING_ERROR": ("AI_THINKING_ERROR", 500),
    "GAME_ALREADY_FINISHED": ("GAME_ALREADY_FINISHED", 400),
    "AI_SERVICE_UNAVAILABLE": ("AI_SERVICE_UNAVAILABLE", 503),
}


def error_status(error: ReversiError) -> tuple[str, int]:
    """Public error code and HTTP status for an engine error."""
    if error.code in _ERROR_MAP:
        return _ERROR_MAP[error.code]
    if error.code.startswith("AI_"):
        return "AI_ERROR", 500
    return "INTERNAL_ERROR", 500


def create_app(service=None, settings: Optional[Settings] = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional BattleService instance (built from settings if not provided)
        settings: Optional Settings (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI, Request
    from fastapi.exceptions import RequestValidationError
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse, Response

    from .service import BattleService, build_battle_service
    from .schemas import (
        # Request models
        CreateBattleRequest,
        MoveRequest,
        ChangeDifficultyRequest,
        # Response models
        BattleResponse,
        MoveResponse,
        SessionListResponse,
        MoveHistoryResponse,
        DifficultiesResponse,
        ErrorResponse,
        HealthResponse,
        # Enums
        ErrorCode,
    )

    if settings is None:
        settings = Settings.from_env()
        settings.validate()
    configure_logging(settings.server.log_level)

    battle_service: BattleService = service or build_battle_service(settings)

    @contextlib.asynccontextmanager
    async def lifespan(app):
        sweeper = None
        if settings.battle.enable_session_cleanup:
            sweeper = asyncio.create_task(
                battle_service.registry.run_idle_sweeper(
                    settings.battle.cleanup_interval_minutes * 60
                )
            )
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper

    app = FastAPI(
        title="Reversi Arena API",
        description="""
Play Reversi against a computer opponent.

## Turn Flow

`POST /api/ai-battle/{id}/move` applies your move and returns the AI's
reply in the same response. If the AI must pass you move again; if you
must pass the AI keeps moving.

## Error Codes

| Code | HTTP | Description |
|------|------|-------------|
| `GAME_NOT_FOUND` | 404 | Unknown or expired battle |
| `INVALID_MOVE` | 400 | Occupied square or no capture |
| `INVALID_POSITION` | 400 | Row/column outside 0-7 |
| `NOT_PLAYER_TURN` | 403 | The AI is to move |
| `OPPONENT_BUSY` | 409 | The AI is still thinking |
| `GAME_ALREADY_FINISHED` | 400 | Game is over |
| `MAX_SESSIONS_REACHED` | 429 | Server is full |
| `AI_THINKING_ERROR` | 500 | AI failed after retries; your move was kept |
""",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(ReversiError)
    async def handle_reversi_error(request: Request, exc: ReversiError):
        code, status = error_status(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return make_error_response(ErrorCode(code), exc.message, status, exc.context or None)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        return make_error_response(
            ErrorCode.VALIDATION_ERROR,
            "Request validation failed",
            422,
            {"errors": [str(e.get("msg")) for e in exc.errors()]},
        )

    # =========================================================================
    # Battle Endpoints
    # =========================================================================

    @app.post(
        "/api/ai-battle",
        response_model=BattleResponse,
        status_code=201,
        tags=["Battles"],
        summary="Create a battle",
    )
    async def create_battle(request: Optional[CreateBattleRequest] = None) -> BattleResponse:
        return battle_service.create_battle(request or CreateBattleRequest())

    @app.get(
        "/api/ai-battle/difficulties",
        response_model=DifficultiesResponse,
        tags=["Battles"],
        summary="List AI difficulty levels",
    )
    async def list_difficulties() -> DifficultiesResponse:
        return battle_service.list_difficulties()

    @app.get(
        "/api/ai-battle/sessions",
        response_model=SessionListResponse,
        tags=["Battles"],
        summary="List live battles",
    )
    async def list_sessions() -> SessionListResponse:
        return battle_service.list_sessions()

    @app.get(
        "/api/ai-battle/{game_id}",
        response_model=BattleResponse,
        tags=["Battles"],
        summary="Get battle state",
    )
    async def get_battle(game_id: str) -> BattleResponse:
        return battle_service.get_battle(game_id)

    @app.delete(
        "/api/ai-battle/{game_id}",
        status_code=204,
        tags=["Battles"],
        summary="End a battle",
    )
    async def delete_battle(game_id: str):
        battle_service.delete_battle(game_id)
        return Response(status_code=204)

    # =========================================================================
    # Move Endpoints
    # =========================================================================

    @app.post(
        "/api/ai-battle/{game_id}/move",
        response_model=MoveResponse,
        tags=["Moves"],
        summary="Play a move",
        responses={
            400: {"model": ErrorResponse},
            403: {"model": ErrorResponse},
            409: {"model": ErrorResponse},
        },
    )
    async def make_move(game_id: str, request: MoveRequest) -> MoveResponse:
        return await battle_service.make_move(game_id, request)

    @app.post(
        "/api/ai-battle/{game_id}/ai-move",
        response_model=MoveResponse,
        tags=["Moves"],
        summary="Retry the AI's reply",
    )
    async def resume_ai(game_id: str) -> MoveResponse:
        return await battle_service.resume_ai(game_id)

    @app.put(
        "/api/ai-battle/{game_id}/difficulty",
        response_model=BattleResponse,
        tags=["Moves"],
        summary="Change AI difficulty",
    )
    async def change_difficulty(game_id: str, request: ChangeDifficultyRequest) -> BattleResponse:
        return battle_service.change_difficulty(game_id, request)

    @app.get(
        "/api/ai-battle/{game_id}/history",
        response_model=MoveHistoryResponse,
        tags=["Moves"],
        summary="Get the move log",
    )
    async def get_history(game_id: str) -> MoveHistoryResponse:
        return battle_service.get_history(game_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return battle_service.health()

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Reversi Arena API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app
