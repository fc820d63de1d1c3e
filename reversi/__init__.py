"""
Reversi Arena - Reversi engine with a computer opponent

A deterministic rules engine wrapped in a concurrent session service.
Provides:
- Move legality, flips and turn resolution
- Computer opponents in three strengths
- A session registry with admission control and idle expiry
- An orchestrator that drives AI replies with timeout, fallback and retry
"""

__version__ = "1.0.0"
