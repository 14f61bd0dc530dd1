"""Tests for matching reports and the command-line runner."""

import json

import pandas as pd
import pytest

from trustmatch.evaluation import (
    compute_score_distribution_stats,
    create_matching_report,
    matches_to_frame,
    save_matches_csv,
)
from trustmatch.matching import MatchingOutcome, find_blocking_pairs, run_stable_matching
from trustmatch.run import load_round, main, run_round


@pytest.fixture
def scenario_outcome(scenario_projects, scenario_candidates, scenario_scores) -> MatchingOutcome:
    return run_stable_matching(scenario_projects, scenario_candidates, scenario_scores)


class TestMatchingReport:
    """Test report contents."""

    def test_report_counts(self, scenario_outcome, scenario_projects, scenario_candidates, scenario_scores):
        stability = find_blocking_pairs(scenario_projects, scenario_candidates,
                                        scenario_outcome.matches, scenario_scores)
        report = create_matching_report(scenario_outcome, scenario_projects, scenario_candidates, stability)
        assert report.n_matched == 2
        assert report.match_rate == pytest.approx(2 / 3)
        assert report.fill_rate == pytest.approx(1.0)
        assert report.score_stats.max == pytest.approx(0.95)
        assert report.additional_metrics["unfilled_projects"] == []
        assert "Is stable: True" in report.summary()

    def test_report_save(self, scenario_outcome, scenario_projects, scenario_candidates, tmp_path):
        report = create_matching_report(scenario_outcome, scenario_projects, scenario_candidates)
        path = tmp_path / "report.json"
        report.save(str(path))
        with open(path) as f:
            saved = json.load(f)
        assert saved["n_candidates"] == 3
        assert "stability" not in saved

    def test_no_scores(self):
        assert compute_score_distribution_stats([]) is None


class TestMatchesFrame:
    """Test tabular export."""

    def test_frame_columns(self, scenario_outcome):
        df = matches_to_frame(scenario_outcome)
        assert list(df["candidate_id"]) == ["C", "A"]
        assert list(df.columns[:3]) == ["candidate_id", "project_id", "match_score"]

    def test_empty_frame(self):
        df = matches_to_frame(MatchingOutcome())
        assert df.empty
        assert list(df.columns) == ["candidate_id", "project_id", "match_score"]

    def test_csv(self, scenario_outcome, tmp_path):
        path = tmp_path / "out" / "matches.csv"
        save_matches_csv(scenario_outcome, str(path))
        assert len(pd.read_csv(path)) == 2


class TestRunner:
    """Test the command-line runner."""

    def test_run_round_with_scores(self, config_path, tmp_path, scenario_scores_nested):
        round_path = tmp_path / "round.json"
        round_path.write_text(json.dumps({
            "projects": [
                {"projectId": "P1", "requiredSkills": [1.0]},
                {"projectId": "P2", "requiredSkills": [1.0]},
            ],
            "candidates": [{"candidateId": cid} for cid in "ABC"],
            "scores": scenario_scores_nested
        }))
        output = tmp_path / "result.json"
        csv_path = tmp_path / "matches.csv"

        result = run_round(str(config_path), str(round_path), str(output), str(csv_path))

        assert result["unmatched"] == ["B"]
        assert json.loads(output.read_text()) == result
        assert csv_path.exists()

    def test_main_with_sample_round(self, config_path, sample_round_path, monkeypatch):
        monkeypatch.setattr(
            "sys.argv", ["trustmatch.run", "--config", str(config_path), "--input", str(sample_round_path)]
        )
        assert main() == 0

    def test_main_missing_input(self, config_path, tmp_path, monkeypatch):
        monkeypatch.setattr(
            "sys.argv", ["trustmatch.run", "--config", str(config_path), "--input", str(tmp_path / "nope.json")]
        )
        assert main() == 1

    def test_load_round_requires_sections(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"projects": []}))
        with pytest.raises(ValueError):
            load_round(str(path))
