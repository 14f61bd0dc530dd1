"""
Stability verification for a finished matching.

A pair (c, p) blocks the matching when both:
- c strictly prefers p to its assignment (or is unmatched and p is acceptable)
- p has a free seat, or prefers c to the weakest member it holds

Preferences use the same tie-broken rankings as the solver, so a matching
produced by run_stable_matching always verifies as stable. Problems are
reported as data; the verifier never raises on an unstable matching.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Sequence, Union

from ..exceptions import InvalidInputError
from ..profiles.schema import BlockingPair, Candidate, MatchResult, Project
from .score_matrix import ScoreMatrix
from .stable import check_unique_ids, project_rank_key

logger = logging.getLogger(__name__)


@dataclass
class StabilityReport:
    """
    Stability check results.

    Attributes:
        blocking_pairs: Pairs that would rather be matched to each other
        capacity_violations: project_id -> number of members held over capacity
    """
    blocking_pairs: List[BlockingPair] = field(default_factory=list)
    capacity_violations: Dict[str, int] = field(default_factory=dict)

    @property
    def is_stable(self) -> bool:
        return not self.blocking_pairs and not self.capacity_violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            "blocking_pairs": [bp.to_dict() for bp in self.blocking_pairs],
            "capacity_violations": dict(self.capacity_violations),
            "is_stable": self.is_stable
        }


def _as_match(match: Union[MatchResult, Dict[str, Any]]) -> MatchResult:
    if isinstance(match, MatchResult):
        return match
    return MatchResult(
        candidate_id=match.get("candidate_id", match.get("candidateId")),
        project_id=match.get("project_id", match.get("projectId")),
        match_score=float(match.get("match_score", match.get("matchScore", 0.0)))
    )


def find_blocking_pairs(
    projects: Sequence[Project],
    candidates: Sequence[Candidate],
    matches: Sequence[Union[MatchResult, Dict[str, Any]]],
    scores: ScoreMatrix,
    min_score: float = 0.0
) -> StabilityReport:
    """
    Find every blocking pair of a matching.

    Args:
        projects: Projects with capacities
        candidates: All candidates of the round, matched or not
        matches: The matching to verify
        scores: ScoreMatrix the preferences are derived from
        min_score: Acceptability threshold used by the solver

    Returns:
        StabilityReport; is_stable is False if any pair blocks or any
        project holds more members than its capacity

    Raises:
        InvalidInputError: If a match names an unknown id or a candidate is
            assigned twice
    """
    check_unique_ids(projects, candidates)
    projects_by_id = {p.project_id: p for p in projects}
    candidate_ids = {c.candidate_id for c in candidates}

    assignment: Dict[str, str] = {}
    members: Dict[str, List[str]] = {p.project_id: [] for p in projects}
    for raw in matches:
        match = _as_match(raw)
        if match.project_id not in projects_by_id:
            raise InvalidInputError(f"Match refers to unknown project {match.project_id}")
        if match.candidate_id not in candidate_ids:
            raise InvalidInputError(f"Match refers to unknown candidate {match.candidate_id}")
        if match.candidate_id in assignment:
            raise InvalidInputError(f"Candidate {match.candidate_id} is assigned more than once")
        assignment[match.candidate_id] = match.project_id
        members[match.project_id].append(match.candidate_id)

    report = StabilityReport()
    for project in projects:
        overflow = len(members[project.project_id]) - project.capacity
        if overflow > 0:
            report.capacity_violations[project.project_id] = overflow

    def candidate_key(candidate_id: str, project_id: str):
        return (-scores.candidate_score(candidate_id, project_id), project_id)

    weakest: Dict[str, Optional[str]] = {}
    for project_id, held in members.items():
        if held:
            weakest[project_id] = max(held, key=lambda cid: project_rank_key(scores, project_id, cid))
        else:
            weakest[project_id] = None

    for candidate in sorted(candidates, key=lambda c: c.candidate_id):
        cid = candidate.candidate_id
        current = assignment.get(cid)
        for project in sorted(projects, key=lambda p: p.project_id):
            pid = project.project_id
            if pid == current or not scores.is_acceptable(cid, project, min_score):
                continue
            if current is not None and candidate_key(cid, pid) >= candidate_key(cid, current):
                continue

            has_seat = len(members[pid]) < project.capacity
            prefers_candidate = (
                weakest[pid] is not None
                and project_rank_key(scores, pid, cid) < project_rank_key(scores, pid, weakest[pid])
            )
            if has_seat or prefers_candidate:
                report.blocking_pairs.append(BlockingPair(candidate_id=cid, project_id=pid))

    if report.is_stable:
        logger.info(f"Matching of {len(assignment)} candidates is stable")
    else:
        logger.warning(
            f"Matching is unstable: {len(report.blocking_pairs)} blocking pairs, "
            f"{len(report.capacity_violations)} projects over capacity"
        )
    return report
