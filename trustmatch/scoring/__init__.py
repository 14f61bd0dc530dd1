"""Compatibility scoring module."""

from .vectors import (
    cosine_similarity,
    compute_vision_alignment,
    compute_gap_vector,
    compute_skill_complementarity,
)
from .compatibility import (
    CompatibilityConfig,
    CompatibilityScorer,
    ScoringContext,
    create_scorer_from_config,
)

__all__ = [
    "cosine_similarity",
    "compute_vision_alignment",
    "compute_gap_vector",
    "compute_skill_complementarity",
    "CompatibilityConfig",
    "CompatibilityScorer",
    "ScoringContext",
    "create_scorer_from_config",
]
