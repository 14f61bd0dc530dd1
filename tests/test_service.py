"""Tests for the service facade."""

import json

import pytest

from trustmatch.cold_start import InMemoryInteractionCountRepository
from trustmatch.configs import load_config
from trustmatch.exceptions import InvalidInputError
from trustmatch.service import MatchingService
from trustmatch.trust import compute_cross_service_trust


@pytest.fixture
def service(config_path) -> MatchingService:
    return MatchingService(load_config(str(config_path)), n_jobs=1)


OWNER = {
    "userId": "owner",
    "identity": {"visionEmbedding": [1.0, 0.0, 0.0]},
    "capability": {"skillVector": [1.0, 0.0, 0.0]},
    "trust": {"compositeTrust": 0.7}
}

CANDIDATE = {
    "userId": "cand",
    "identity": {"visionEmbedding": [1.0, 0.0, 0.0]},
    "capability": {"skillVector": [0.0, 1.0, 0.0]},
    "trust": {"compositeTrust": 0.8}
}


class TestAggregateTrust:
    """Test trust aggregation through the service."""

    def test_dict_signals(self, service, trust_signals):
        result = service.aggregate_trust([s.to_dict() for s in trust_signals])
        assert result == pytest.approx(compute_cross_service_trust(trust_signals))

    def test_camel_case_options(self, service, trust_signals):
        result = service.aggregate_trust(trust_signals, {"shrinkageStrength": 0})
        assert result == pytest.approx(compute_cross_service_trust(trust_signals, shrinkage_strength=0))

    def test_empty_returns_prior(self, service):
        assert service.aggregate_trust([], {"prior": 0.4}) == 0.4


class TestScoreCompatibility:
    """Test compatibility scoring through the service."""

    def test_actor_to_actor(self, service):
        result = service.score_compatibility(OWNER, CANDIDATE, {
            "requiredSkills": [1.0, 1.0, 0.0],
            "teamSkills": [1.0, 0.0, 0.0],
            "stage": "BUILDING",
            "dataPoints": 100
        })
        assert set(result) == {
            "score", "visionAlignment", "complementarity", "trustScore", "psychFit", "strategy", "explanation"
        }
        assert result["score"] == pytest.approx(0.875)
        assert result["strategy"] == "COLLABORATIVE_FILTERING"

    def test_actor_to_project(self, service):
        project = {
            "projectId": "P1",
            "requiredSkills": [1.0, 1.0, 0.0],
            "teamSkills": [1.0, 0.0, 0.0],
            "stage": "BUILDING",
            "dataPoints": 100,
            "owner": OWNER
        }
        result = service.score_compatibility(CANDIDATE, project, {"psychFit": 0.5})
        assert result["score"] == pytest.approx(0.875)
        assert result["complementarity"] == pytest.approx(1.0)

    def test_project_without_owner_raises(self, service):
        project = {"projectId": "P1", "requiredSkills": [1.0, 1.0, 0.0]}
        with pytest.raises(InvalidInputError):
            service.score_compatibility(CANDIDATE, project)

    def test_actor_to_actor_needs_context(self, service):
        with pytest.raises(InvalidInputError):
            service.score_compatibility(OWNER, CANDIDATE)

    def test_interaction_counts_feed_strategy(self, config_path):
        counts = InMemoryInteractionCountRepository({"owner": 30})
        service = MatchingService(load_config(str(config_path)), interaction_counts=counts, n_jobs=1)
        result = service.score_compatibility(OWNER, CANDIDATE, {
            "requiredSkills": [1.0, 1.0, 0.0],
            "teamSkills": [1.0, 0.0, 0.0]
        })
        assert result["strategy"] == "BANDIT_EXPLORE"


class TestSelectStrategy:
    """Test strategy selection through the service."""

    def test_select_strategy(self, service):
        result = service.select_strategy(3)
        assert result["strategy"] == "CONTENT_INIT"
        assert result["explanation"]

    def test_negative_raises(self, service):
        with pytest.raises(InvalidInputError):
            service.select_strategy(-5)


class TestRunMatching:
    """Test matching rounds through the service."""

    def test_explicit_scores(self, service, scenario_scores_nested):
        projects = [
            {"projectId": "P1", "requiredSkills": [1.0], "capacity": 1},
            {"projectId": "P2", "requiredSkills": [1.0], "capacity": 1},
        ]
        candidates = [{"candidateId": cid} for cid in "ABC"]
        result = service.run_matching(projects, candidates, scenario_scores_nested)
        assert result == {
            "matches": [
                {"candidateId": "C", "projectId": "P2", "matchScore": 0.95},
                {"candidateId": "A", "projectId": "P1", "matchScore": 0.9},
            ],
            "blockingPairs": 0,
            "isStable": True,
            "unmatched": ["B"]
        }

    def test_profile_round(self, service, sample_round_path):
        with open(sample_round_path) as f:
            data = json.load(f)
        result = service.run_matching(data["projects"], data["candidates"])
        assert result["isStable"]
        assert result["blockingPairs"] == 0
        matched = {m["candidateId"] for m in result["matches"]}
        assert matched | set(result["unmatched"]) == {"A", "B", "C"}

    def test_min_score_from_config(self, config_path, scenario_scores_nested, scenario_projects,
                                   scenario_candidates):
        config = load_config(str(config_path))
        config["matching"]["min_score"] = 0.92
        service = MatchingService(config, n_jobs=1)
        result = service.run_matching(scenario_projects, scenario_candidates, scenario_scores_nested)
        assert result["matches"] == [{"candidateId": "C", "projectId": "P2", "matchScore": 0.95}]
        assert result["unmatched"] == ["A", "B"]
        assert result["isStable"]


class TestReputationPrimitives:
    """Test the configured reputation helpers."""

    def test_reputation_lower_bound_uses_configured_confidence(self):
        loose = MatchingService({"statistics": {"wilson_confidence": 0.8}})
        strict = MatchingService({"statistics": {"wilson_confidence": 0.99}})
        assert loose.reputation_lower_bound(20, 5) > strict.reputation_lower_bound(20, 5)

    def test_decay_uses_configured_half_life(self):
        service = MatchingService({"statistics": {"half_life_days": {"cafe": 10}}})
        assert service.decay_score(10.0, 10, "cafe") == pytest.approx(6.0)
        assert service.decay_score(10.0, 180, "brain") == pytest.approx(6.0)
