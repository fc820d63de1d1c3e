"""
Fallback Policy - Retries and secondary service for opponent moves.

Each attempt asks the primary service first. If it fails and fallback is
enabled, the secondary service gets a try within the same attempt. Between
attempts the policy sleeps for retry_delay_ms. When every attempt is used
up the last failure is surfaced as OpponentThinkingError.

Only opponent service failures are retried; anything else propagates.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import asyncio
import logging

from ..errors import OpponentError, OpponentThinkingError
from ..engine_core.state import GameState
from ..bots.policy import Difficulty
from ..bots.service import OpponentMove, OpponentService

logger = logging.getLogger(__name__)


@dataclass
class FallbackPolicy:
    """
    Usage:
        policy = FallbackPolicy(primary=mock, secondary=LocalOpponentService())
        move = await policy.calculate_move(state, Difficulty.EASY)
    """
    primary: OpponentService
    secondary: Optional[OpponentService] = None
    enable_fallback: bool = True
    max_attempts: int = 3
    retry_delay_ms: int = 1000

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    async def calculate_move(self, state: GameState, difficulty: Difficulty) -> OpponentMove:
        """
        Get an opponent move, falling back and retrying as configured.

        Raises:
            OpponentThinkingError: every attempt failed
        """
        last_error: Optional[OpponentError] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self.primary.calculate_move(state, difficulty)
            except OpponentError as e:
                last_error = e
                logger.warning(
                    "Primary AI %s failed (attempt %d/%d): %s",
                    self.primary.name, attempt, self.max_attempts, e,
                )

            if self.enable_fallback and self.secondary is not None and attempt < self.max_attempts:
                try:
                    move = await self.secondary.calculate_move(state, difficulty)
                    logger.info("Fallback AI %s answered on attempt %d", self.secondary.name, attempt)
                    return move
                except OpponentError as e:
                    last_error = e
                    logger.warning(
                        "Fallback AI %s failed (attempt %d/%d): %s",
                        self.secondary.name, attempt, self.max_attempts, e,
                    )

            if attempt < self.max_attempts and self.retry_delay_ms > 0:
                await asyncio.sleep(self.retry_delay_ms / 1000)

        details = last_error.message if last_error else "unknown error"
        raise OpponentThinkingError(details=details, attempts=self.max_attempts)
