"""Opponent factory.

Maps each difficulty to a concrete policy and its simulated thinking time.
The set of policies is closed; there is no plugin registration.

Usage:
    from reversi.bots.factory import create_policy, get_difficulty_profile

    policy = create_policy(Difficulty.HARD)
    decision = policy.select_move(state)

    profile = get_difficulty_profile(Difficulty.MEDIUM)
"""

from __future__ import annotations

import logging
from typing import TypedDict

from .policy import Difficulty, OpponentPolicy, RandomPolicy
from .search import AlphaBetaPolicy, MinimaxPolicy

logger = logging.getLogger(__name__)


class DifficultyProfile(TypedDict):
    """How one difficulty tier is played."""
    policy: str
    depth: int
    think_time_ms: int


DIFFICULTY_PROFILES: dict[Difficulty, DifficultyProfile] = {
    Difficulty.EASY: {"policy": "random", "depth": 1, "think_time_ms": 500},
    Difficulty.MEDIUM: {"policy": "minimax", "depth": 2, "think_time_ms": 1500},
    Difficulty.HARD: {"policy": "alphabeta", "depth": 4, "think_time_ms": 3000},
}


def get_difficulty_profile(difficulty: Difficulty) -> DifficultyProfile:
    return DIFFICULTY_PROFILES[Difficulty(difficulty)]


def create_policy(difficulty: Difficulty) -> OpponentPolicy:
    """Build the policy for a difficulty tier."""
    profile = get_difficulty_profile(difficulty)
    kind = profile["policy"]
    if kind == "random":
        policy: OpponentPolicy = RandomPolicy()
    elif kind == "minimax":
        policy = MinimaxPolicy(depth=profile["depth"])
    else:
        policy = AlphaBetaPolicy(depth=profile["depth"])
    logger.debug("Created %s for difficulty %s", policy.get_name(), Difficulty(difficulty).value)
    return policy
