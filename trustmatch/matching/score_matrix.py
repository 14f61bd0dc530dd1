"""
Pairwise score tables for one matching round.

A ScoreMatrix holds two views of every (candidate, project) pair:
- project side: how well the candidate fits the project (owner -> candidate)
- candidate side: how attractive the project is to the candidate

When only one view is known the candidate side mirrors the project side.
Score tables can come from callers (nested mappings) or be computed from
profiles with a CompatibilityScorer over a bounded worker pool.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional, Sequence, Tuple

from joblib import Parallel, delayed

from ..exceptions import InvalidInputError
from ..profiles.schema import Candidate, Project

logger = logging.getLogger(__name__)

PairKey = Tuple[str, str]


def _check_score(value: float, key: PairKey) -> float:
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Score for {key} must be a number, got {value!r}")
    if not math.isfinite(score):
        raise InvalidInputError(f"Score for {key} must be finite, got {score}")
    return score


@dataclass
class ScoreMatrix:
    """
    Project-side and candidate-side scores keyed by (candidate_id, project_id).

    Attributes:
        project_scores: Project's view of each candidate
        candidate_scores: Candidate's view of each project (None = mirror project side)
        breakdowns: Optional named score components per pair
    """
    project_scores: Dict[PairKey, float]
    candidate_scores: Optional[Dict[PairKey, float]] = None
    breakdowns: Dict[PairKey, Tuple[Tuple[str, float], ...]] = field(default_factory=dict)

    def __post_init__(self):
        self.project_scores = {k: _check_score(v, k) for k, v in self.project_scores.items()}
        if self.candidate_scores is not None:
            self.candidate_scores = {k: _check_score(v, k) for k, v in self.candidate_scores.items()}

    def project_score(self, candidate_id: str, project_id: str) -> float:
        """Project-side score; raises InvalidInputError when the pair is missing."""
        key = (candidate_id, project_id)
        if key not in self.project_scores:
            raise InvalidInputError(f"Missing score for candidate {candidate_id} and project {project_id}")
        return self.project_scores[key]

    def candidate_score(self, candidate_id: str, project_id: str) -> float:
        """Candidate-side score, falling back to the project side."""
        if self.candidate_scores is not None and (candidate_id, project_id) in self.candidate_scores:
            return self.candidate_scores[(candidate_id, project_id)]
        return self.project_score(candidate_id, project_id)

    def breakdown(self, candidate_id: str, project_id: str) -> Optional[Tuple[Tuple[str, float], ...]]:
        return self.breakdowns.get((candidate_id, project_id))

    def is_acceptable(self, candidate_id: str, project: Project, min_score: float = 0.0) -> bool:
        """
        Whether a pair may be matched at all.

        Current team members are never matched to their own project, and both
        sides must score the pair at least min_score.
        """
        if candidate_id in project.team_members:
            return False
        return (
            self.project_score(candidate_id, project.project_id) >= min_score
            and self.candidate_score(candidate_id, project.project_id) >= min_score
        )

    def require_complete(self, projects: Sequence[Project], candidates: Sequence[Candidate]) -> None:
        """Raise InvalidInputError if any (candidate, project) pair has no score."""
        missing = [
            (c.candidate_id, p.project_id)
            for c in candidates
            for p in projects
            if (c.candidate_id, p.project_id) not in self.project_scores
        ]
        if missing:
            raise InvalidInputError(f"Missing scores for {len(missing)} pairs, e.g. {missing[:3]}")

    def to_nested(self) -> Dict[str, Dict[str, float]]:
        """Project-side scores as {candidate_id: {project_id: score}}."""
        nested: Dict[str, Dict[str, float]] = {}
        for (candidate_id, project_id), score in sorted(self.project_scores.items()):
            nested.setdefault(candidate_id, {})[project_id] = score
        return nested

    @classmethod
    def from_nested(
        cls,
        project_side: Mapping[str, Mapping[str, float]],
        candidate_side: Optional[Mapping[str, Mapping[str, float]]] = None
    ) -> "ScoreMatrix":
        """
        Create from nested mappings {candidate_id: {project_id: score}}.

        Args:
            project_side: Project's view of each candidate
            candidate_side: Candidate's view of each project (optional)

        Returns:
            ScoreMatrix instance
        """
        def flatten(nested: Mapping[str, Mapping[str, float]]) -> Dict[PairKey, float]:
            return {
                (candidate_id, project_id): score
                for candidate_id, row in nested.items()
                for project_id, score in row.items()
            }

        return cls(
            project_scores=flatten(project_side),
            candidate_scores=flatten(candidate_side) if candidate_side is not None else None
        )


def _score_pair(scorer, project: Project, candidate: Candidate, bidirectional: bool) -> Dict[str, Any]:
    forward = scorer.score_project(project, candidate)
    backward = scorer.score_candidate_view(project, candidate) if bidirectional else None
    return {
        "key": (candidate.candidate_id, project.project_id),
        "project_score": forward.score,
        "candidate_score": backward.score if backward is not None else None,
        "breakdown": forward.components()
    }


def build_score_matrix(
    projects: Sequence[Project],
    candidates: Sequence[Candidate],
    scorer,
    n_jobs: int = -1,
    bidirectional: bool = True
) -> ScoreMatrix:
    """
    Score every (candidate, project) pair from profiles.

    Pairs are scored on a joblib thread pool; results are collected in input
    order so the matrix does not depend on scheduling.

    Args:
        projects: Projects with owner profiles
        candidates: Candidates with profiles
        scorer: CompatibilityScorer used for both directions
        n_jobs: Worker count (-1 = all CPUs)
        bidirectional: Also score the candidate's view of each project

    Returns:
        ScoreMatrix with project-side (and candidate-side) scores
    """
    pairs = [(p, c) for p in projects for c in candidates]
    if not pairs:
        return ScoreMatrix(project_scores={}, candidate_scores={} if bidirectional else None)

    logger.info(
        f"Scoring {len(pairs)} pairs ({len(candidates)} candidates x {len(projects)} projects), "
        f"n_jobs={n_jobs}, bidirectional={bidirectional}"
    )

    rows: List[Dict[str, Any]] = Parallel(n_jobs=n_jobs, prefer="threads")(
        delayed(_score_pair)(scorer, p, c, bidirectional) for p, c in pairs
    )

    project_scores = {row["key"]: row["project_score"] for row in rows}
    candidate_scores = (
        {row["key"]: row["candidate_score"] for row in rows} if bidirectional else None
    )
    breakdowns = {row["key"]: row["breakdown"] for row in rows}

    return ScoreMatrix(
        project_scores=project_scores,
        candidate_scores=candidate_scores,
        breakdowns=breakdowns
    )
