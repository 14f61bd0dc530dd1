"""
Many-to-one stable matching (deferred acceptance).

Candidates propose; projects hold their best proposers up to capacity.

Algorithm:
    1. Each candidate ranks acceptable projects by candidate-side score
       (descending, ties by project id).
    2. Each round, every free candidate proposes to its next choice.
    3. Each project keeps its top `capacity` among held and new proposers
       (project-side score descending, ties by candidate id) and rejects
       the rest, who become free again.
    4. Stops when no free candidate has a remaining choice.

The result is stable and candidate-optimal. Each candidate proposes to each
project at most once, so the number of proposals is bounded by
candidates x projects; exceeding the bound means the preference state is
corrupt and raises MatchingConvergenceError.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional, Sequence, Tuple

from ..exceptions import ConfigError, InvalidInputError, MatchingConvergenceError
from ..profiles.schema import Candidate, MatchResult, Project
from .score_matrix import ScoreMatrix

logger = logging.getLogger(__name__)


@dataclass
class MatchingConfig:
    """
    Configuration for the stable matching solver.

    Attributes:
        min_score: Pairs scored below this on either side are never matched
        bidirectional: Score the candidate's view separately when building
            score tables from profiles
    """
    min_score: float = 0.0
    bidirectional: bool = True

    def validate(self) -> None:
        if not 0 <= self.min_score <= 1:
            raise ConfigError(f"min_score must be in [0, 1], got {self.min_score}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MatchingConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "MatchingConfig":
        """Create from main config dictionary."""
        matching_config = config.get("matching", {})
        return cls(
            min_score=matching_config.get("min_score", 0.0),
            bidirectional=matching_config.get("bidirectional", True)
        )


@dataclass
class MatchingOutcome:
    """
    Result of one matching round.

    Attributes:
        matches: Assignments sorted by score desc, then project id, then candidate id
        unmatched: Ids of candidates left without a project (sorted)
        rounds: Number of proposal rounds run
        proposals: Total number of proposals made
    """
    matches: List[MatchResult] = field(default_factory=list)
    unmatched: List[str] = field(default_factory=list)
    rounds: int = 0
    proposals: int = 0

    def assignments(self) -> Dict[str, str]:
        """candidate_id -> project_id."""
        return {m.candidate_id: m.project_id for m in self.matches}

    def members_of(self, project_id: str) -> List[str]:
        return sorted(m.candidate_id for m in self.matches if m.project_id == project_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matches": [m.to_dict() for m in self.matches],
            "unmatched": list(self.unmatched),
            "rounds": self.rounds,
            "proposals": self.proposals
        }


def check_unique_ids(projects: Sequence[Project], candidates: Sequence[Candidate]) -> None:
    """Raise InvalidInputError on duplicate project or candidate ids."""
    for label, ids in (
        ("project", [p.project_id for p in projects]),
        ("candidate", [c.candidate_id for c in candidates]),
    ):
        duplicates = sorted(i for i, n in Counter(ids).items() if n > 1)
        if duplicates:
            raise InvalidInputError(f"Duplicate {label} ids: {duplicates}")


def candidate_preferences(
    candidate_id: str,
    projects: Sequence[Project],
    scores: ScoreMatrix,
    min_score: float = 0.0
) -> List[str]:
    """
    Acceptable projects in the candidate's order of preference.

    Ordered by candidate-side score descending, ties by project id.
    """
    acceptable = [p for p in projects if scores.is_acceptable(candidate_id, p, min_score)]
    acceptable.sort(key=lambda p: (-scores.candidate_score(candidate_id, p.project_id), p.project_id))
    return [p.project_id for p in acceptable]


def project_rank_key(scores: ScoreMatrix, project_id: str, candidate_id: str) -> Tuple[float, str]:
    """Sort key of a candidate in a project's preference (smaller is better)."""
    return (-scores.project_score(candidate_id, project_id), candidate_id)


def run_stable_matching(
    projects: Sequence[Project],
    candidates: Sequence[Candidate],
    scores: ScoreMatrix,
    config: Optional[MatchingConfig] = None
) -> MatchingOutcome:
    """
    Run candidate-proposing deferred acceptance.

    Args:
        projects: Projects with capacities
        candidates: Candidates to place
        scores: ScoreMatrix covering every (candidate, project) pair
        config: MatchingConfig (defaults when omitted)

    Returns:
        MatchingOutcome with matches and unmatched candidates

    Raises:
        InvalidInputError: On duplicate ids or missing scores
        MatchingConvergenceError: If the proposal bound is exceeded
    """
    config = config or MatchingConfig()
    config.validate()
    check_unique_ids(projects, candidates)
    scores.require_complete(projects, candidates)

    projects_by_id = {p.project_id: p for p in projects}
    preferences = {
        c.candidate_id: candidate_preferences(c.candidate_id, projects, scores, config.min_score)
        for c in candidates
    }
    next_choice = {c.candidate_id: 0 for c in candidates}
    held: Dict[str, List[str]] = {p.project_id: [] for p in projects}

    max_proposals = len(candidates) * len(projects)
    proposals = 0
    rounds = 0
    free = sorted(cid for cid, prefs in preferences.items() if prefs)

    while free:
        rounds += 1
        incoming: Dict[str, List[str]] = defaultdict(list)
        for candidate_id in free:
            prefs = preferences[candidate_id]
            if next_choice[candidate_id] >= len(prefs):
                continue
            project_id = prefs[next_choice[candidate_id]]
            next_choice[candidate_id] += 1
            proposals += 1
            if proposals > max_proposals:
                raise MatchingConvergenceError(
                    f"Exceeded proposal bound {max_proposals} after {rounds} rounds"
                )
            incoming[project_id].append(candidate_id)

        if not incoming:
            break

        rejected = []
        for project_id in sorted(incoming):
            pool = held[project_id] + incoming[project_id]
            pool.sort(key=lambda cid: project_rank_key(scores, project_id, cid))
            capacity = projects_by_id[project_id].capacity
            held[project_id] = pool[:capacity]
            rejected.extend(pool[capacity:])

        logger.debug(
            f"Round {rounds}: {sum(len(v) for v in incoming.values())} proposals, "
            f"{len(rejected)} rejected"
        )
        free = sorted(cid for cid in rejected if next_choice[cid] < len(preferences[cid]))

    matches = []
    for project_id, members in held.items():
        for candidate_id in members:
            matches.append(MatchResult(
                candidate_id=candidate_id,
                project_id=project_id,
                match_score=scores.project_score(candidate_id, project_id),
                breakdown=scores.breakdown(candidate_id, project_id)
            ))
    matches.sort(key=lambda m: (-m.match_score, m.project_id, m.candidate_id))

    matched = {m.candidate_id for m in matches}
    unmatched = sorted(c.candidate_id for c in candidates if c.candidate_id not in matched)

    logger.info(
        f"Stable matching finished: {len(matches)} matches, {len(unmatched)} unmatched, "
        f"{rounds} rounds, {proposals} proposals"
    )
    return MatchingOutcome(matches=matches, unmatched=unmatched, rounds=rounds, proposals=proposals)
