"""
Opponent Services - Async adapters that produce computer moves.

An OpponentService wraps move selection behind one contract:
- calculate_move(state, difficulty) -> OpponentMove
- availability, supported difficulties, status and health probe

calculate_move() is a template method. The base class checks
availability, difficulty and game state, then awaits the subclass's
_compute() under the service's time limit. On expiry the caller gets
OpponentTimeoutError straight away while the computation itself is left
to finish in the background; its result is discarded.

Implementations:
- LocalOpponentService: in-process policies with simulated thinking time
- MockOpponentService: scripted behaviour for tests and demos
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional
import asyncio
import logging
import time

from ..errors import (
    ConfigurationError,
    NoValidMovesError,
    OpponentTimeoutError,
    ServiceUnavailableError,
    StrategyError,
)
from ..engine_core.state import GameState, Position
from ..engine_core.reducer import is_legal
from ..engine_core.action_generator import legal_moves
from .policy import Difficulty
from .factory import create_policy, get_difficulty_profile

logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT_MS = 5000


class ServiceType(str, Enum):
    """Where moves are computed."""
    LOCAL = "local"
    HTTP = "http"
    MOCK = "mock"


@dataclass
class OpponentMove:
    """A move produced by an opponent service, with search annotations."""
    position: Position
    thinking_time_ms: int
    evaluation_score: Optional[float] = None
    depth_reached: Optional[int] = None
    nodes_evaluated: Optional[int] = None


@dataclass
class ServiceStatus:
    """Point-in-time report on an opponent service."""
    service_type: ServiceType
    name: str
    available: bool
    supported_difficulties: list[Difficulty]
    last_check: float
    average_response_time_ms: Optional[float] = None
    call_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "service_type": self.service_type.value,
            "name": self.name,
            "available": self.available,
            "supported_difficulties": [d.value for d in self.supported_difficulties],
            "last_check": self.last_check,
            "average_response_time_ms": self.average_response_time_ms,
            "call_count": self.call_count,
        }


class OpponentService(ABC):
    """
    Abstract base class for opponent services.

    Subclasses implement _compute(); everything else is shared.
    """

    service_type: ServiceType = ServiceType.LOCAL
    name: str = "Opponent Service"
    unavailable_message: str = "AI service is unavailable"

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS):
        self.timeout_ms = timeout_ms
        self.call_count = 0
        self._response_times: deque[float] = deque(maxlen=50)

    @abstractmethod
    async def _compute(self, state: GameState, difficulty: Difficulty) -> OpponentMove:
        """Produce a move for state.current_player. state is a private copy."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the service currently accepts requests."""

    def supported_difficulties(self) -> list[Difficulty]:
        return list(Difficulty)

    def supports(self, difficulty: Difficulty) -> bool:
        return difficulty in self.supported_difficulties()

    async def calculate_move(self, state: GameState, difficulty: Difficulty) -> OpponentMove:
        """
        Compute a move for the current mover.

        Raises:
            ServiceUnavailableError: service is down
            StrategyError: unsupported difficulty, finished game, or policy failure
            NoValidMovesError: mover must pass
            OpponentTimeoutError: no answer within timeout_ms
        """
        self.call_count += 1
        if not self.is_available():
            raise ServiceUnavailableError(self.unavailable_message)
        if not self.supports(difficulty):
            raise StrategyError(
                f"Difficulty {difficulty.value} not supported by {self.name}",
                context={"difficulty": difficulty.value},
            )
        if state.is_finished:
            raise StrategyError("Cannot calculate move for finished game")

        started = time.perf_counter()
        task = asyncio.ensure_future(self._compute(state.clone(), difficulty))
        try:
            move = await asyncio.wait_for(asyncio.shield(task), self.timeout_ms / 1000)
        except asyncio.TimeoutError:
            task.add_done_callback(self._discard_late_result)
            raise OpponentTimeoutError(self.timeout_ms)

        self._response_times.append((time.perf_counter() - started) * 1000)
        logger.debug(
            "%s chose %s at %s in %dms",
            self.name, move.position, difficulty.value, move.thinking_time_ms,
        )
        return move

    def _discard_late_result(self, task: asyncio.Future):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("%s: abandoned computation failed: %s", self.name, exc)
        else:
            logger.info("%s: discarded move computed after timeout", self.name)

    @property
    def average_response_time_ms(self) -> Optional[float]:
        if not self._response_times:
            return None
        return sum(self._response_times) / len(self._response_times)

    def get_status(self) -> ServiceStatus:
        return ServiceStatus(
            service_type=self.service_type,
            name=self.name,
            available=self.is_available(),
            supported_difficulties=self.supported_difficulties(),
            last_check=time.time(),
            average_response_time_ms=self.average_response_time_ms,
            call_count=self.call_count,
        )

    async def health_check(self) -> float:
        """
        Probe the service with a fresh game.

        Returns the probe latency in milliseconds.

        Raises:
            ServiceUnavailableError: the service is down or the probe failed
        """
        if not self.is_available():
            raise ServiceUnavailableError(self.unavailable_message)
        difficulties = self.supported_difficulties()
        if not difficulties:
            raise ServiceUnavailableError("Service health check failed")

        started = time.perf_counter()
        probe = GameState(game_id="health-check")
        try:
            await self.calculate_move(probe, difficulties[0])
        except ServiceUnavailableError:
            raise
        except Exception as e:
            raise ServiceUnavailableError(
                "Service health check failed", context={"cause": str(e)}
            ) from e
        return (time.perf_counter() - started) * 1000


class LocalOpponentService(OpponentService):
    """
    In-process opponent.

    The policy for the requested difficulty runs in a worker thread while
    the simulated thinking delay elapses, so a move takes roughly
    max(think time, search time). Fast mode drops the delay.
    """

    service_type = ServiceType.LOCAL

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS, fast: bool = False):
        super().__init__(timeout_ms)
        self.fast = fast
        self.name = "Local AI (fast)" if fast else "Local AI"

    def is_available(self) -> bool:
        return True

    def think_time_ms(self, difficulty: Difficulty) -> int:
        if self.fast:
            return 0
        return get_difficulty_profile(difficulty)["think_time_ms"]

    async def _compute(self, state: GameState, difficulty: Difficulty) -> OpponentMove:
        policy = create_policy(difficulty)
        started = time.perf_counter()
        decision, _ = await asyncio.gather(
            asyncio.to_thread(policy.select_move, state),
            asyncio.sleep(self.think_time_ms(difficulty) / 1000),
        )
        return OpponentMove(
            position=decision.position,
            thinking_time_ms=int((time.perf_counter() - started) * 1000),
            evaluation_score=decision.evaluation_score,
            depth_reached=decision.depth_reached,
            nodes_evaluated=decision.nodes_evaluated,
        )


@dataclass
class MockOpponentConfig:
    """
    Scripted behaviour for MockOpponentService.

    Fields can be changed on a live service to simulate outages.
    """
    available: bool = True
    response_time_ms: int = 100
    should_error: bool = False
    error_message: str = "Mock AI error"
    fixed_move: Optional[Position] = None
    supported_difficulties: list[Difficulty] = field(default_factory=lambda: list(Difficulty))


_MOCK_ANNOTATIONS = {
    Difficulty.EASY: (0.1, 1, 10),
    Difficulty.MEDIUM: (0.5, 3, 100),
    Difficulty.HARD: (0.9, 6, 1000),
}


class MockOpponentService(OpponentService):
    """
    Scripted opponent.

    Plays config.fixed_move when it is legal, else the first legal move in
    row-major order, after sleeping config.response_time_ms.
    """

    service_type = ServiceType.MOCK
    name = "Mock AI"
    unavailable_message = "Mock AI service is configured as unavailable"

    def __init__(
        self,
        config: MockOpponentConfig | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ):
        super().__init__(timeout_ms)
        self.config = config or MockOpponentConfig()

    def is_available(self) -> bool:
        return self.config.available

    def supported_difficulties(self) -> list[Difficulty]:
        return list(self.config.supported_difficulties)

    async def _compute(self, state: GameState, difficulty: Difficulty) -> OpponentMove:
        if self.config.response_time_ms > 0:
            await asyncio.sleep(self.config.response_time_ms / 1000)
        if self.config.should_error:
            raise StrategyError(self.config.error_message)

        fixed = self.config.fixed_move
        if fixed is not None and is_legal(state.board, state.current_player, fixed):
            position = fixed
        else:
            moves = legal_moves(state.board, state.current_player)
            if not moves:
                raise NoValidMovesError()
            position = moves[0]

        score, depth, nodes = _MOCK_ANNOTATIONS[difficulty]
        return OpponentMove(
            position=position,
            thinking_time_ms=self.config.response_time_ms,
            evaluation_score=score,
            depth_reached=depth,
            nodes_evaluated=nodes,
        )


def create_service(
    service_type: ServiceType,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    fast: bool = False,
    mock_config: MockOpponentConfig | None = None,
) -> OpponentService:
    """
    Build an opponent service by type.

    Raises:
        ConfigurationError: HTTP services are not implemented
    """
    service_type = ServiceType(service_type)
    if service_type is ServiceType.LOCAL:
        return LocalOpponentService(timeout_ms=timeout_ms, fast=fast)
    if service_type is ServiceType.MOCK:
        return MockOpponentService(mock_config, timeout_ms=timeout_ms)
    raise ConfigurationError(
        "HTTP AI service not implemented yet",
        context={"service_type": service_type.value},
    )
