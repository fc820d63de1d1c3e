"""
API Service - Business logic layer between the HTTP API and the engine.

The service:
1. Translates API requests to registry and game loop calls
2. Builds response models from session snapshots
3. Reports and swaps the AI services

This layer is framework-agnostic. Failures are raised as ReversiError
subclasses and translated to HTTP by the app.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional
import logging

from .. import __version__
from ..config import Settings
from ..engine_core.state import Position
from ..engine_core.action import MoveRecord
from ..engine_core.action_generator import legal_moves
from ..bots.policy import Difficulty
from ..bots.service import OpponentService, ServiceStatus, create_service
from ..session import FallbackPolicy, GameLoop, Session, SessionRegistry, TurnResult
from .schemas import (
    BattleResponse,
    BattleStatus,
    ChangeDifficultyRequest,
    CreateBattleRequest,
    DifficultiesResponse,
    DifficultyInfo,
    HealthResponse,
    MoveHistoryResponse,
    MoveInfo,
    MoveRequest,
    MoveResponse,
    OpponentStatusInfo,
    PlayerColor,
    PositionInfo,
    SessionListResponse,
    SessionStatsInfo,
    SessionSummary,
)

logger = logging.getLogger(__name__)


@dataclass
class BattleService:
    """
    Main API service.

    Usage:
        service = build_battle_service(Settings.from_env())

        battle = service.create_battle(CreateBattleRequest(difficulty="hard"))
        result = await service.make_move(battle.game_id, MoveRequest(row=2, col=3))
    """
    registry: SessionRegistry
    fallback: FallbackPolicy
    default_difficulty: Difficulty = Difficulty.EASY
    loop: GameLoop = field(init=False)

    def __post_init__(self):
        self.loop = GameLoop(self.registry, self.fallback)

    # =========================================================================
    # Battles
    # =========================================================================

    def create_battle(self, request: CreateBattleRequest) -> BattleResponse:
        difficulty = request.difficulty or self.default_difficulty
        session_id = self.registry.create(difficulty)
        return self._battle_response(self.registry.get(session_id))

    def get_battle(self, session_id: str) -> BattleResponse:
        return self._battle_response(self.registry.get(session_id))

    def delete_battle(self, session_id: str):
        self.registry.remove(session_id)

    def list_sessions(self) -> SessionListResponse:
        sessions = self.registry.list()
        return SessionListResponse(
            sessions=[self._summary(s) for s in sessions],
            total=len(sessions),
            max_sessions=self.registry.max_sessions,
        )

    async def make_move(self, session_id: str, request: MoveRequest) -> MoveResponse:
        position = Position(request.row, request.col)
        result = await self.loop.play_move(session_id, position)
        return self._move_response(result)

    async def resume_ai(self, session_id: str) -> MoveResponse:
        result = await self.loop.resume_opponent(session_id)
        return self._move_response(result)

    def change_difficulty(self, session_id: str, request: ChangeDifficultyRequest) -> BattleResponse:
        session = self.loop.change_difficulty(session_id, request.difficulty)
        return self._battle_response(session)

    def get_history(self, session_id: str) -> MoveHistoryResponse:
        entries = self.loop.history(session_id)
        moves = [_move_info(e.record, e.thinking_time_ms) for e in entries]
        return MoveHistoryResponse(game_id=session_id, moves=moves, total_moves=len(moves))

    def list_difficulties(self) -> DifficultiesResponse:
        return DifficultiesResponse(
            difficulties=[
                DifficultyInfo(level=d, name=d.display_name, description=d.description)
                for d in Difficulty
            ]
        )

    # =========================================================================
    # AI services
    # =========================================================================

    def health(self) -> HealthResponse:
        primary = self.fallback.primary.get_status()
        secondary = self.fallback.secondary.get_status() if self.fallback.secondary else None
        stats = self.registry.stats()
        return HealthResponse(
            status="healthy" if primary.available or (secondary and secondary.available) else "degraded",
            service="reversi-arena",
            version=__version__,
            opponent=_status_info(primary),
            fallback=_status_info(secondary) if secondary else None,
            fallback_enabled=self.fallback.enable_fallback,
            sessions=SessionStatsInfo(**stats.to_dict()),
        )

    async def switch_opponent(self, service: OpponentService):
        """
        Replace the primary AI service after probing it.

        Raises:
            ServiceUnavailableError: the new service failed its health check
        """
        latency = await service.health_check()
        previous = self.fallback.primary
        self.fallback.primary = service
        logger.info(
            "Switched AI service %s -> %s (probe %.0fms)", previous.name, service.name, latency,
        )

    # =========================================================================
    # Conversion Helpers
    # =========================================================================

    def _battle_response(self, session: Session) -> BattleResponse:
        state = session.game_state
        black, white = state.score()
        valid = [] if state.is_finished else legal_moves(state.board, state.current_player)
        return BattleResponse(
            game_id=session.session_id,
            board=state.board.to_grid(),
            current_player=PlayerColor(state.current_player.value),
            black_count=black,
            white_count=white,
            difficulty=session.difficulty,
            ai_thinking=session.opponent_thinking,
            status=BattleStatus(state.status.value),
            winner=PlayerColor(state.winner.value) if state.winner else None,
            valid_moves=[PositionInfo(row=p.row, col=p.col) for p in valid],
            move_count=state.move_count,
            created_at=session.created_at,
            last_activity_at=session.last_activity_at,
        )

    def _summary(self, session: Session) -> SessionSummary:
        state = session.game_state
        return SessionSummary(
            game_id=session.session_id,
            difficulty=session.difficulty,
            status=BattleStatus(state.status.value),
            current_player=PlayerColor(state.current_player.value),
            move_count=state.move_count,
            ai_thinking=session.opponent_thinking,
            created_at=session.created_at,
            last_activity_at=session.last_activity_at,
        )

    def _move_response(self, result: TurnResult) -> MoveResponse:
        return MoveResponse(
            success=True,
            game_state=self._battle_response(result.session),
            player_move=_move_info(result.player_move) if result.player_move else None,
            ai_moves=[_move_info(r.record, r.thinking_time_ms) for r in result.opponent_moves],
            message=result.message,
        )


def _move_info(record: MoveRecord, thinking_time_ms: Optional[int] = None) -> MoveInfo:
    return MoveInfo(
        player=PlayerColor(record.player.value),
        row=record.position.row,
        col=record.position.col,
        flipped=[PositionInfo(row=p.row, col=p.col) for p in sorted(record.flipped)],
        timestamp=record.timestamp,
        thinking_time_ms=thinking_time_ms,
    )


def _status_info(status: ServiceStatus) -> OpponentStatusInfo:
    return OpponentStatusInfo(
        service_type=status.service_type.value,
        name=status.name,
        available=status.available,
        supported_difficulties=status.supported_difficulties,
        average_response_time_ms=status.average_response_time_ms,
        call_count=status.call_count,
    )


def build_battle_service(settings: Settings) -> BattleService:
    """
    Wire registry, AI services and fallback policy from settings.

    Raises:
        ConfigurationError: an unsupported AI service type was selected
    """
    opponent = settings.opponent
    primary = create_service(opponent.service_type, timeout_ms=opponent.timeout_ms, fast=opponent.fast_mode)

    secondary: Optional[OpponentService] = None
    fb = settings.fallback
    if fb.enable_fallback and fb.service_type is not None:
        secondary = create_service(fb.service_type, timeout_ms=opponent.timeout_ms, fast=opponent.fast_mode)

    registry = SessionRegistry(
        max_sessions=settings.battle.max_sessions,
        session_timeout_seconds=settings.battle.session_timeout_minutes * 60,
    )
    fallback = FallbackPolicy(
        primary=primary,
        secondary=secondary,
        enable_fallback=fb.enable_fallback,
        max_attempts=fb.max_retry_attempts,
        retry_delay_ms=fb.retry_delay_ms,
    )
    logger.info(
        "Battle service ready: primary=%s fallback=%s max_sessions=%d",
        primary.name, secondary.name if secondary else "none", registry.max_sessions,
    )
    return BattleService(
        registry=registry,
        fallback=fallback,
        default_difficulty=settings.battle.default_difficulty,
    )
