"""
Vector features for compatibility scoring.

This module computes the geometric relationships between two actors'
profile vectors, rather than properties of a single actor.

Vector Features:
- Vision alignment: (cos(V_A, V_B) + 1) / 2 (directional similarity in [0, 1])
- Gap vector: G = R - ((R . S) / ||S||^2) S (Gram-Schmidt residual of the
  required skills R against the team's skills S)
- Skill complementarity: cos(S_B, G) clamped to [0, 1]

A candidate whose skills only duplicate what the team already has lies
orthogonal to G and scores ~0; one whose skills point along G scores ~1.
"""

import logging
from typing import Sequence

import numpy as np

from ..exceptions import InvalidInputError

logger = logging.getLogger(__name__)


def _as_vector(values: Sequence[float], name: str) -> np.ndarray:
    vec = np.asarray(values, dtype=float)
    if vec.ndim != 1:
        raise InvalidInputError(f"{name} must be a one-dimensional vector, got shape {vec.shape}")
    return vec


def check_same_length(a: Sequence[float], b: Sequence[float], name: str) -> None:
    """Raise InvalidInputError when two vectors have different lengths."""
    if len(a) != len(b):
        raise InvalidInputError(
            f"{name} vectors must have same length: {len(a)} vs {len(b)}"
        )


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity of two vectors.

    Returns 0 when either vector has zero norm (no direction to compare).
    """
    check_same_length(a, b, "Cosine")
    vec_a = _as_vector(a, "a")
    vec_b = _as_vector(b, "b")

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    cosine = float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
    return float(np.clip(cosine, -1.0, 1.0))


def batch_cosine_similarity(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Compute row-wise cosine similarity between two matrices.

    Args:
        a: First matrix (N x D)
        b: Second matrix (N x D), or a single row broadcast against a

    Returns:
        Array of cosine similarities (N,); 0 for zero-norm rows
    """
    a = np.atleast_2d(np.asarray(a, dtype=float))
    b = np.atleast_2d(np.asarray(b, dtype=float))
    if a.shape[1] != b.shape[1]:
        raise InvalidInputError(
            f"Vectors must have same length: {a.shape[1]} vs {b.shape[1]}"
        )

    norm_a = np.linalg.norm(a, axis=1, keepdims=True)
    norm_b = np.linalg.norm(b, axis=1, keepdims=True)
    zero = (norm_a == 0) | (norm_b == 0)

    # Avoid division by zero
    norm_a = np.where(norm_a == 0, 1, norm_a)
    norm_b = np.where(norm_b == 0, 1, norm_b)

    similarity = np.sum((a / norm_a) * (b / norm_b), axis=1)
    similarity = np.where(zero.ravel(), 0.0, similarity)
    return np.clip(similarity, -1.0, 1.0)


def compute_vision_alignment(vision_a: Sequence[float], vision_b: Sequence[float]) -> float:
    """
    Vision alignment between two identity embeddings.

    Cosine similarity mapped from [-1, 1] to [0, 1]. Zero-norm embeddings
    carry no vision and align with nothing (0).
    """
    check_same_length(vision_a, vision_b, "Vision")
    if not np.any(vision_a) or not np.any(vision_b):
        return 0.0
    return (cosine_similarity(vision_a, vision_b) + 1) / 2


def compute_gap_vector(required_skills: Sequence[float], team_skills: Sequence[float]) -> np.ndarray:
    """
    Gap (deficiency) vector via Gram-Schmidt orthogonal projection.

    G = R - proj_S(R)

    Args:
        required_skills: Target skill vector R for the project
        team_skills: Current team skill vector S

    Returns:
        Gap vector G, orthogonal to S; equal to R when the team has no skills
    """
    check_same_length(required_skills, team_skills, "Skill")
    required = _as_vector(required_skills, "required_skills")
    team = _as_vector(team_skills, "team_skills")

    mag_sq_team = float(np.dot(team, team))
    if mag_sq_team == 0:
        return required.copy()

    projection = (np.dot(required, team) / mag_sq_team) * team
    return required - projection


def compute_skill_complementarity(candidate_skills: Sequence[float], gap_vector: Sequence[float]) -> float:
    """
    How much a candidate's skills cover the project's unmet needs.

    Cosine between the candidate skill vector and the gap vector, clamped
    to [0, 1]; negative complementarity is not meaningful.
    """
    check_same_length(candidate_skills, gap_vector, "Skill")
    return max(0.0, cosine_similarity(candidate_skills, gap_vector))


def batch_skill_complementarity(candidate_skills: np.ndarray, gap_vector: Sequence[float]) -> np.ndarray:
    """Complementarity of many candidates (N x D) against one gap vector."""
    gap = np.atleast_2d(np.asarray(gap_vector, dtype=float))
    return np.maximum(0.0, batch_cosine_similarity(candidate_skills, gap))
