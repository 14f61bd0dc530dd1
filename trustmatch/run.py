"""
Command-line runner for one matching round.

Usage:
    python -m trustmatch.run --config configs/config.yaml --input round.json

The input file holds:
    {
      "projects":   [{"projectId": ..., "requiredSkills": [...], "capacity": 1, ...}],
      "candidates": [{"candidateId": ..., "dna": {...}, ...}],
      "scores":     {"<candidate_id>": {"<project_id>": 0.8}}          (optional)
      "candidateScores": {"<candidate_id>": {"<project_id>": 0.7}}     (optional)
    }

When no scores are given they are computed from the profiles.

The runner performs the following steps:
1. Load and validate configuration
2. Load the round from JSON
3. Run deferred acceptance and verify stability
4. Log a matching report and write the outputs
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Any, Optional

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging level from config."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


def load_round(input_path: str) -> Dict[str, Any]:
    """
    Load a matching round from a JSON file.

    Args:
        input_path: Path to the round JSON file

    Returns:
        Dictionary with projects, candidates and optional score tables
    """
    path = Path(input_path)
    if not path.exists():
        raise FileNotFoundError(f"Round file not found: {input_path}")

    with open(path, "r") as f:
        data = json.load(f)

    if "projects" not in data or "candidates" not in data:
        raise ValueError(f"Round file {input_path} must contain 'projects' and 'candidates'")

    logger.info(
        f"Loaded round from {input_path}: {len(data['projects'])} projects, "
        f"{len(data['candidates'])} candidates"
    )
    return data


def run_round(
    config_path: str,
    input_path: str,
    output_path: Optional[str] = None,
    report_csv: Optional[str] = None
) -> Dict[str, Any]:
    """
    Run one matching round end to end.

    Args:
        config_path: Path to the configuration YAML file
        input_path: Path to the round JSON file
        output_path: If provided, write the result JSON here
        report_csv: If provided, write the matches table here

    Returns:
        Result dictionary (matches, blockingPairs, isStable, unmatched)
    """
    # Import modules here to keep --help fast
    from .configs import load_config, validate_config
    from .evaluation import create_matching_report, save_matches_csv
    from .matching import ScoreMatrix
    from .service import MatchingService

    logger.info("=" * 60)
    logger.info("TRUST & MATCHING ROUND")
    logger.info("=" * 60)

    config = load_config(config_path)
    issues = validate_config(config)
    if issues:
        for issue in issues:
            logger.warning(f"Config issue: {issue}")

    setup_logging(config.get("global", {}).get("log_level", "INFO"))

    data = load_round(input_path)
    scores = data.get("scores")
    candidate_scores = data.get("candidateScores", data.get("candidate_scores"))
    if scores is not None:
        scores = ScoreMatrix.from_nested(scores, candidate_scores)

    service = MatchingService(config)
    outcome, stability, projects, candidates = service.match(
        data["projects"], data["candidates"], scores
    )

    report = create_matching_report(outcome, projects, candidates, stability)
    for line in report.summary().split("\n"):
        logger.info(line)

    result = {
        "matches": [
            {"candidateId": m.candidate_id, "projectId": m.project_id, "matchScore": m.match_score}
            for m in outcome.matches
        ],
        "blockingPairs": len(stability.blocking_pairs),
        "isStable": stability.is_stable,
        "unmatched": list(outcome.unmatched)
    }

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(result, f, indent=2)
        logger.info(f"Saved result to {output_path}")

    if report_csv:
        save_matches_csv(outcome, report_csv)

    return result


def main():
    """Main entry point for the matching runner."""
    parser = argparse.ArgumentParser(
        description="Run one trust-aware stable matching round"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="configs/config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument(
        "--input",
        type=str,
        required=True,
        help="Path to the round JSON file (projects, candidates, optional scores)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Path to write the result JSON"
    )
    parser.add_argument(
        "--report-csv",
        type=str,
        default=None,
        help="Path to write the matches as CSV"
    )

    args = parser.parse_args()

    try:
        result = run_round(
            args.config,
            args.input,
            output_path=args.output,
            report_csv=args.report_csv
        )
        if result["isStable"]:
            logger.info("\nMatching round completed successfully!")
            return 0
        else:
            logger.error("\nMatching round produced an unstable matching!")
            return 1
    except Exception as e:
        logger.exception(f"Matching round failed with error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
