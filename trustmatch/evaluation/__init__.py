"""Evaluation module for matching round reports."""

from .metrics import (
    compute_score_distribution_stats,
    MatchingReport,
    create_matching_report,
    matches_to_frame,
    save_matches_csv
)

__all__ = [
    "compute_score_distribution_stats",
    "MatchingReport",
    "create_matching_report",
    "matches_to_frame",
    "save_matches_csv"
]
