"""Stable matching between candidates and projects."""

from .score_matrix import ScoreMatrix, build_score_matrix
from .stable import (
    MatchingConfig,
    MatchingOutcome,
    candidate_preferences,
    run_stable_matching,
)
from .verifier import StabilityReport, find_blocking_pairs

__all__ = [
    "ScoreMatrix",
    "build_score_matrix",
    "MatchingConfig",
    "MatchingOutcome",
    "candidate_preferences",
    "run_stable_matching",
    "StabilityReport",
    "find_blocking_pairs",
]
