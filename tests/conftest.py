"""
Pytest configuration and shared fixtures.
"""

from pathlib import Path
from typing import Dict, List

import pytest

from trustmatch.matching import ScoreMatrix
from trustmatch.profiles import (
    CapabilityVector,
    Candidate,
    DreamDna,
    IdentityVector,
    Project,
    ServiceTrustSignal,
    TrustVector,
)

PROJECT_ROOT = Path(__file__).parent.parent


def make_dna(user_id: str, vision, skills, trust: float = 0.5) -> DreamDna:
    """Build a minimal profile."""
    return DreamDna(
        user_id=user_id,
        identity=IdentityVector(vision_embedding=tuple(vision)),
        capability=CapabilityVector(skill_vector=tuple(skills)),
        trust=TrustVector(composite_trust=trust)
    )


@pytest.fixture
def config_path() -> Path:
    """Path to the shipped configuration file."""
    return PROJECT_ROOT / "configs" / "config.yaml"


@pytest.fixture
def sample_round_path() -> Path:
    """Path to the sample round used by the smoke test and CLI."""
    return PROJECT_ROOT / "data" / "sample_round.json"


@pytest.fixture
def trust_signals() -> List[ServiceTrustSignal]:
    """Two above-average signals from different services."""
    return [
        ServiceTrustSignal(service="store", score=4.6, mean=4.0, std=0.5, reliability=40),
        ServiceTrustSignal(service="cafe", score=0.9, mean=0.7, std=0.2, reliability=12),
    ]


@pytest.fixture
def owner() -> DreamDna:
    return make_dna("owner", vision=[1.0, 0.0, 0.0], skills=[1.0, 0.0, 0.0], trust=0.7)


@pytest.fixture
def aligned_candidate() -> DreamDna:
    """Shares the owner's vision and fills the team's gap."""
    return make_dna("aligned", vision=[0.9, 0.1, 0.0], skills=[0.0, 1.0, 0.0], trust=0.8)


@pytest.fixture
def redundant_candidate() -> DreamDna:
    """Opposite vision, duplicates skills the team already has."""
    return make_dna("redundant", vision=[-1.0, 0.0, 0.0], skills=[1.0, 0.0, 0.0], trust=0.3)


@pytest.fixture
def scenario_projects() -> List[Project]:
    """Two single-seat projects."""
    return [
        Project(project_id="P1", required_skills=(1.0, 0.0), team_skills=(0.0, 0.0), capacity=1),
        Project(project_id="P2", required_skills=(0.0, 1.0), team_skills=(0.0, 0.0), capacity=1),
    ]


@pytest.fixture
def scenario_candidates() -> List[Candidate]:
    return [Candidate(candidate_id=cid) for cid in ["A", "B", "C"]]


@pytest.fixture
def scenario_scores_nested() -> Dict[str, Dict[str, float]]:
    """B is outbid at both projects."""
    return {
        "A": {"P1": 0.9, "P2": 0.2},
        "B": {"P1": 0.8, "P2": 0.85},
        "C": {"P1": 0.1, "P2": 0.95},
    }


@pytest.fixture
def scenario_scores(scenario_scores_nested) -> ScoreMatrix:
    return ScoreMatrix.from_nested(scenario_scores_nested)


@pytest.fixture
def profiled_projects(owner) -> List[Project]:
    """Projects with owner profiles, for profile-based scoring."""
    second_owner = make_dna("owner-2", vision=[0.0, 0.0, 1.0], skills=[0.0, 0.0, 1.0], trust=0.6)
    return [
        Project(
            project_id="P1",
            required_skills=(1.0, 1.0, 0.0),
            team_skills=(1.0, 0.0, 0.0),
            stage="BUILDING",
            capacity=1,
            owner=owner,
            data_points=30
        ),
        Project(
            project_id="P2",
            required_skills=(0.0, 1.0, 1.0),
            team_skills=(0.0, 0.0, 1.0),
            stage="IDEATION",
            capacity=2,
            owner=second_owner,
            data_points=3
        ),
    ]


@pytest.fixture
def profiled_candidates(aligned_candidate, redundant_candidate) -> List[Candidate]:
    third = make_dna("third", vision=[0.2, 0.2, 0.9], skills=[0.0, 0.8, 0.3], trust=0.55)
    return [
        Candidate(candidate_id="aligned", dna=aligned_candidate, data_points=60,
                  psych_fit_by_project={"P1": 0.8, "P2": 0.4}),
        Candidate(candidate_id="redundant", dna=redundant_candidate, data_points=4),
        Candidate(candidate_id="third", dna=third, data_points=25,
                  psych_fit_by_project={"P2": 0.9}),
    ]
