"""
Bots module - Computer opponent implementations.

Provides:
- OpponentPolicy: Interface for move selection
- RandomPolicy / MinimaxPolicy / AlphaBetaPolicy: the three tiers
- BoardEvaluator: Scores boards for the searches
- OpponentService: Async adapters with timeout, status and health probe
"""

from .policy import Difficulty, MoveDecision, OpponentPolicy, RandomPolicy
from .evaluator import BoardEvaluator, EvaluationWeights
from .search import AlphaBetaPolicy, MinimaxPolicy
from .factory import DIFFICULTY_PROFILES, create_policy, get_difficulty_profile
from .service import (
    LocalOpponentService,
    MockOpponentConfig,
    MockOpponentService,
    OpponentMove,
    OpponentService,
    ServiceStatus,
    ServiceType,
    create_service,
)

__all__ = [
    "Difficulty",
    "MoveDecision",
    "OpponentPolicy",
    "RandomPolicy",
    "BoardEvaluator",
    "EvaluationWeights",
    "AlphaBetaPolicy",
    "MinimaxPolicy",
    "DIFFICULTY_PROFILES",
    "create_policy",
    "get_difficulty_profile",
    "LocalOpponentService",
    "MockOpponentConfig",
    "MockOpponentService",
    "OpponentMove",
    "OpponentService",
    "ServiceStatus",
    "ServiceType",
    "create_service",
]
