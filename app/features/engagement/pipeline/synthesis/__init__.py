"""
Synthesis package: deterministic profiles for accounts without a session.
"""

from .service import (
    HeuristicSynthesizer,
    days_on_platform,
    estimate_ghost_mode,
    estimate_join_date,
    heuristic_synthesizer,
    seeded_random,
)

__all__ = [
    "HeuristicSynthesizer",
    "days_on_platform",
    "estimate_ghost_mode",
    "estimate_join_date",
    "heuristic_synthesizer",
    "seeded_random",
]
