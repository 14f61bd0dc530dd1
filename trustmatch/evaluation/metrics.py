"""
Reporting for matching rounds.

A matching round has no ground truth to score against, so the report
describes the round rather than grading it:
1. Score distribution of the accepted matches
2. Coverage (how many candidates and seats were filled)
3. Stability (blocking pairs, capacity violations)
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..matching.stable import MatchingOutcome
from ..matching.verifier import StabilityReport
from ..profiles.schema import Candidate, Project

logger = logging.getLogger(__name__)


@dataclass
class ScoreDistributionStats:
    """Statistics about score distribution."""
    mean: float
    std: float
    min: float
    max: float
    quantiles: Dict[str, float]  # e.g., {"p10": 0.2, "p50": 0.5, "p90": 0.8}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mean": float(self.mean),
            "std": float(self.std),
            "min": float(self.min),
            "max": float(self.max),
            "quantiles": {k: float(v) for k, v in self.quantiles.items()}
        }


def compute_score_distribution_stats(
    scores: Sequence[float],
    quantiles: Sequence[float] = (0.1, 0.5, 0.9)
) -> Optional[ScoreDistributionStats]:
    """
    Compute distribution statistics for scores.

    Args:
        scores: Match scores
        quantiles: Quantile values to compute (default: p10, p50, p90)

    Returns:
        ScoreDistributionStats instance, or None when there are no scores
    """
    scores = np.asarray(scores, dtype=float)
    if scores.size == 0:
        return None

    quantile_dict = {
        f"p{int(round(q * 100))}": float(np.percentile(scores, q * 100))
        for q in quantiles
    }
    return ScoreDistributionStats(
        mean=float(np.mean(scores)),
        std=float(np.std(scores)),
        min=float(np.min(scores)),
        max=float(np.max(scores)),
        quantiles=quantile_dict
    )


@dataclass
class MatchingReport:
    """
    Summary of one matching round.

    Attributes:
        n_projects: Projects taking part
        n_candidates: Candidates taking part
        n_matched: Candidates placed
        total_capacity: Seats offered across projects
        rounds: Proposal rounds the solver ran
        proposals: Proposals made
        score_stats: Distribution of match scores (None if nothing matched)
        stability: Verifier output, when the matching was verified
    """
    n_projects: int
    n_candidates: int
    n_matched: int
    total_capacity: int
    rounds: int
    proposals: int
    score_stats: Optional[ScoreDistributionStats] = None
    stability: Optional[StabilityReport] = None
    additional_metrics: Dict[str, Any] = field(default_factory=dict)

    @property
    def match_rate(self) -> float:
        return self.n_matched / self.n_candidates if self.n_candidates else 0.0

    @property
    def fill_rate(self) -> float:
        return self.n_matched / self.total_capacity if self.total_capacity else 0.0

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "n_projects": self.n_projects,
            "n_candidates": self.n_candidates,
            "n_matched": self.n_matched,
            "total_capacity": self.total_capacity,
            "match_rate": self.match_rate,
            "fill_rate": self.fill_rate,
            "rounds": self.rounds,
            "proposals": self.proposals,
            "additional_metrics": self.additional_metrics
        }
        if self.score_stats:
            result["score_stats"] = self.score_stats.to_dict()
        if self.stability:
            result["stability"] = self.stability.to_dict()
        return result

    def save(self, filepath: str) -> None:
        """Save report to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved matching report to {filepath}")

    def summary(self) -> str:
        """Generate text summary of the report."""
        lines = [
            "Matching Report",
            "=" * 50,
            "",
            f"Projects:   {self.n_projects} ({self.total_capacity} seats)",
            f"Candidates: {self.n_candidates}",
            f"Matched:    {self.n_matched} ({self.match_rate:.2%} of candidates, "
            f"{self.fill_rate:.2%} of seats)",
            f"Rounds:     {self.rounds} ({self.proposals} proposals)",
        ]

        if self.score_stats:
            lines.extend([
                "",
                "Match Scores:",
                f"  Mean: {self.score_stats.mean:.4f}",
                f"  Std:  {self.score_stats.std:.4f}",
                f"  Min:  {self.score_stats.min:.4f}",
                f"  Max:  {self.score_stats.max:.4f}",
            ])
            for q_name, q_value in self.score_stats.quantiles.items():
                lines.append(f"  {q_name}: {q_value:.4f}")

        if self.stability:
            lines.extend([
                "",
                "Stability:",
                f"  Is stable: {self.stability.is_stable}",
                f"  Blocking pairs: {len(self.stability.blocking_pairs)}",
            ])
            if self.stability.capacity_violations:
                lines.append(f"  Over capacity: {sorted(self.stability.capacity_violations)}")

        return "\n".join(lines)


def create_matching_report(
    outcome: MatchingOutcome,
    projects: Sequence[Project],
    candidates: Sequence[Candidate],
    stability: Optional[StabilityReport] = None
) -> MatchingReport:
    """
    Create a report for a finished matching round.

    Args:
        outcome: Solver output
        projects: Projects of the round
        candidates: Candidates of the round
        stability: Optional verifier output

    Returns:
        MatchingReport instance
    """
    report = MatchingReport(
        n_projects=len(projects),
        n_candidates=len(candidates),
        n_matched=len(outcome.matches),
        total_capacity=sum(p.capacity for p in projects),
        rounds=outcome.rounds,
        proposals=outcome.proposals,
        score_stats=compute_score_distribution_stats([m.match_score for m in outcome.matches]),
        stability=stability
    )

    per_project = {p.project_id: len(outcome.members_of(p.project_id)) for p in projects}
    report.additional_metrics["members_per_project"] = per_project
    report.additional_metrics["unfilled_projects"] = sorted(
        pid for pid, n in per_project.items() if n == 0
    )

    logger.info(
        f"Matching report: {report.n_matched}/{report.n_candidates} candidates matched, "
        f"fill rate {report.fill_rate:.2%}"
    )
    return report


def matches_to_frame(outcome: MatchingOutcome) -> pd.DataFrame:
    """
    Flatten matches into a DataFrame (one row per match, breakdown as columns).

    Args:
        outcome: Solver output

    Returns:
        DataFrame with candidate_id, project_id, match_score and any
        breakdown components
    """
    rows: List[Dict[str, Any]] = []
    for match in outcome.matches:
        row = {
            "candidate_id": match.candidate_id,
            "project_id": match.project_id,
            "match_score": match.match_score
        }
        if match.breakdown:
            row.update(dict(match.breakdown))
        rows.append(row)

    df = pd.DataFrame(rows, columns=None if rows else ["candidate_id", "project_id", "match_score"])
    return df


def save_matches_csv(outcome: MatchingOutcome, filepath: str) -> None:
    """Write the matches of a round to CSV."""
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    matches_to_frame(outcome).to_csv(filepath, index=False)
    logger.info(f"Saved {len(outcome.matches)} matches to {filepath}")
