"""
Service facade over the trust and matching core.

MatchingService is what the platform services call. It accepts plain
JSON-like dicts (camelCase or snake_case keys) or the dataclasses, wires
the configured components together, and returns JSON-ready dicts with
camelCase keys.
"""

import dataclasses
import logging
from typing import Dict, Any, List, Mapping, Optional, Sequence, Tuple, Union

from .cold_start.bootstrap import InteractionCountRepository
from .cold_start.strategy import ColdStartPolicy, StrategySelector
from .configs.loader import get_config_value, load_config
from .exceptions import InvalidInputError
from .matching.score_matrix import ScoreMatrix, build_score_matrix
from .matching.stable import MatchingConfig, MatchingOutcome, run_stable_matching
from .matching.verifier import StabilityReport, find_blocking_pairs
from .profiles.schema import (
    Candidate,
    DreamDna,
    Project,
    ServiceTrustSignal,
    normalize_keys,
)
from .scoring.compatibility import CompatibilityConfig, CompatibilityScorer, ScoringContext
from .statistics.primitives import StatisticsConfig, apply_service_time_decay, wilson_lower_bound
from .trust.aggregator import TrustAggregator, TrustAggregatorConfig

logger = logging.getLogger(__name__)

ScoreInput = Union[ScoreMatrix, Mapping[str, Mapping[str, float]]]


def _as_project(value: Union[Project, Dict[str, Any]]) -> Project:
    return value if isinstance(value, Project) else Project.from_dict(value)


def _as_candidate(value: Union[Candidate, Dict[str, Any]]) -> Candidate:
    return value if isinstance(value, Candidate) else Candidate.from_dict(value)


def _as_dna(value: Union[DreamDna, Dict[str, Any]]) -> DreamDna:
    return value if isinstance(value, DreamDna) else DreamDna.from_dict(value)


def _looks_like_project(value: Any) -> bool:
    if isinstance(value, Project):
        return True
    if isinstance(value, dict):
        keys = set(normalize_keys(value))
        return bool(keys & {"project_id", "required_skills", "required_skill_vector"})
    return False


class MatchingService:
    """
    Entry point for trust aggregation, compatibility scoring, strategy
    selection and matching rounds.

    Attributes:
        config: Main configuration dictionary
        statistics: StatisticsConfig for the reputation primitives
        aggregator: Configured TrustAggregator
        selector: Configured StrategySelector
        scorer: Configured CompatibilityScorer
        matching_config: MatchingConfig for the solver
        interaction_counts: Optional repository of per-actor interaction
            counts; when set, it supplies data_points for strategy selection
        n_jobs: Worker count for score matrix construction
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        interaction_counts: Optional[InteractionCountRepository] = None,
        n_jobs: Optional[int] = None
    ):
        self.config = config or {}
        self.statistics = StatisticsConfig.from_config(self.config)
        self.statistics.validate()
        self.aggregator = TrustAggregator(TrustAggregatorConfig.from_config(self.config))
        self.selector = StrategySelector(ColdStartPolicy.from_config(self.config))
        self.scorer = CompatibilityScorer(
            config=CompatibilityConfig.from_config(self.config),
            aggregator=self.aggregator,
            selector=self.selector
        )
        self.matching_config = MatchingConfig.from_config(self.config)
        self.matching_config.validate()
        self.interaction_counts = interaction_counts
        self.n_jobs = n_jobs if n_jobs is not None else get_config_value(self.config, "global.n_jobs", -1)
        logger.info(
            f"Initialized MatchingService (min_score={self.matching_config.min_score}, n_jobs={self.n_jobs})"
        )

    @classmethod
    def from_config(
        cls,
        config_path: str,
        interaction_counts: Optional[InteractionCountRepository] = None
    ) -> "MatchingService":
        """Create a service from a YAML config file."""
        return cls(load_config(config_path), interaction_counts=interaction_counts)

    # =========================================================================
    # Trust
    # =========================================================================

    def aggregate_trust(
        self,
        signals: Sequence[Union[ServiceTrustSignal, Dict[str, Any]]],
        options: Optional[Dict[str, Any]] = None
    ) -> float:
        """
        Composite trust in (0, 1) from per-service signals.

        Args:
            signals: Trust signals (dataclasses or dicts)
            options: Optional overrides: shrinkageStrength / shrinkage_strength, prior

        Returns:
            Composite trust score
        """
        options = normalize_keys(options or {})
        parsed = [s if isinstance(s, ServiceTrustSignal) else ServiceTrustSignal.from_dict(s) for s in signals]
        return self.aggregator.aggregate(
            parsed,
            shrinkage_strength=options.get("shrinkage_strength"),
            prior=options.get("prior")
        )

    # =========================================================================
    # Reputation primitives
    # =========================================================================

    def reputation_lower_bound(self, positive: float, negative: float) -> float:
        """Wilson lower bound at the configured confidence level."""
        return wilson_lower_bound(positive, negative, confidence=self.statistics.wilson_confidence)

    def decay_score(self, old_score: float, elapsed_days: float, service: str) -> float:
        """Half-life decay using the configured per-service half-lives."""
        return apply_service_time_decay(
            old_score, elapsed_days, service, half_lives=self.statistics.half_life_days
        )

    # =========================================================================
    # Compatibility
    # =========================================================================

    def score_compatibility(
        self,
        actor_a: Union[DreamDna, Candidate, Dict[str, Any]],
        actor_b_or_project: Union[DreamDna, Project, Dict[str, Any]],
        context: Optional[Union[ScoringContext, Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Score compatibility of two actors, or of an actor and a project.

        With two actors, actor_a is the requester and actor_b the candidate;
        the context must supply required and team skills. With a project, the
        project owner is the requester, actor_a the candidate, and the context
        is derived from the project (psychFit and dataPoints may be overridden).

        Returns:
            Dict with score, visionAlignment, complementarity, trustScore,
            psychFit, strategy and explanation
        """
        if isinstance(actor_a, Candidate):
            actor_a = actor_a.dna
        if actor_a is None:
            raise InvalidInputError("Compatibility scoring needs a profile for actor_a")
        actor_a = _as_dna(actor_a)

        if _looks_like_project(actor_b_or_project):
            project = _as_project(actor_b_or_project)
            if project.owner is None:
                raise InvalidInputError(
                    f"Project {project.project_id} has no owner profile to score against"
                )
            overrides = normalize_keys(context) if isinstance(context, dict) else {}
            data_points = overrides.get("data_points")
            if data_points is None:
                data_points = self._data_points(project.owner.user_id, project.data_points)
            scoring_context = ScoringContext(
                required_skills=project.required_skills,
                team_skills=project.team_skills,
                stage=project.stage,
                psych_fit=overrides.get("psych_fit"),
                data_points=data_points,
                trust_signals=self._parse_signals(overrides.get("trust_signals"))
            )
            result = self.scorer.score(project.owner, actor_a, scoring_context)
        else:
            actor_b = _as_dna(actor_b_or_project)
            scoring_context = self._build_context(actor_a, context)
            result = self.scorer.score(actor_a, actor_b, scoring_context)

        return {
            "score": result.score,
            "visionAlignment": result.vision_alignment,
            "complementarity": result.complementarity,
            "trustScore": result.trust_score,
            "psychFit": result.psych_fit,
            "strategy": result.strategy,
            "explanation": result.explanation
        }

    def _build_context(
        self,
        actor_a: DreamDna,
        context: Optional[Union[ScoringContext, Dict[str, Any]]]
    ) -> ScoringContext:
        if isinstance(context, ScoringContext):
            return context
        if context is None:
            raise InvalidInputError("Actor-to-actor scoring needs a context with required and team skills")

        d = normalize_keys(context)
        if "required_skills" not in d:
            raise InvalidInputError("Scoring context is missing required_skills")
        required = d["required_skills"]
        data_points = d.get("data_points")
        if data_points is None:
            data_points = self._data_points(actor_a.user_id, 0)
        return ScoringContext(
            required_skills=required,
            team_skills=d.get("team_skills", [0.0] * len(required)),
            stage=d.get("stage", d.get("lifecycle_stage", "BUILDING")),
            psych_fit=d.get("psych_fit"),
            data_points=data_points,
            trust_signals=self._parse_signals(d.get("trust_signals"))
        )

    @staticmethod
    def _parse_signals(signals: Optional[Sequence[Any]]) -> Optional[List[ServiceTrustSignal]]:
        if signals is None:
            return None
        return [s if isinstance(s, ServiceTrustSignal) else ServiceTrustSignal.from_dict(s) for s in signals]

    def _data_points(self, user_id: str, fallback: int) -> int:
        if self.interaction_counts is None:
            return fallback
        return self.interaction_counts.get(user_id)

    # =========================================================================
    # Cold start
    # =========================================================================

    def select_strategy(self, data_point_count: int) -> Dict[str, Any]:
        """Cold-start strategy for an interaction count."""
        decision = self.selector.select(data_point_count)
        return {
            "strategy": decision.strategy.value,
            "explanation": decision.explanation,
            "personalization": decision.personalization
        }

    # =========================================================================
    # Matching
    # =========================================================================

    def match(
        self,
        projects: Sequence[Union[Project, Dict[str, Any]]],
        candidates: Sequence[Union[Candidate, Dict[str, Any]]],
        scores: Optional[ScoreInput] = None
    ) -> Tuple[MatchingOutcome, StabilityReport, List[Project], List[Candidate]]:
        """
        Run one matching round and verify it.

        Args:
            projects: Projects (dataclasses or dicts)
            candidates: Candidates (dataclasses or dicts)
            scores: ScoreMatrix or nested {candidate_id: {project_id: score}};
                computed from profiles when omitted

        Returns:
            (outcome, stability report, parsed projects, parsed candidates)
        """
        parsed_projects = [_as_project(p) for p in projects]
        parsed_candidates = [self._with_history(_as_candidate(c)) for c in candidates]

        if scores is None:
            matrix = build_score_matrix(
                parsed_projects,
                parsed_candidates,
                self.scorer,
                n_jobs=self.n_jobs,
                bidirectional=self.matching_config.bidirectional
            )
        elif isinstance(scores, ScoreMatrix):
            matrix = scores
        else:
            matrix = ScoreMatrix.from_nested(scores)

        outcome = run_stable_matching(parsed_projects, parsed_candidates, matrix, self.matching_config)
        stability = find_blocking_pairs(
            parsed_projects,
            parsed_candidates,
            outcome.matches,
            matrix,
            min_score=self.matching_config.min_score
        )
        return outcome, stability, parsed_projects, parsed_candidates

    def run_matching(
        self,
        projects: Sequence[Union[Project, Dict[str, Any]]],
        candidates: Sequence[Union[Candidate, Dict[str, Any]]],
        scores: Optional[ScoreInput] = None
    ) -> Dict[str, Any]:
        """
        Run one matching round.

        Returns:
            Dict with matches, blockingPairs (count), isStable and unmatched
        """
        outcome, stability, _, _ = self.match(projects, candidates, scores)
        return {
            "matches": [
                {
                    "candidateId": m.candidate_id,
                    "projectId": m.project_id,
                    "matchScore": m.match_score
                }
                for m in outcome.matches
            ],
            "blockingPairs": len(stability.blocking_pairs),
            "isStable": stability.is_stable,
            "unmatched": list(outcome.unmatched)
        }

    def _with_history(self, candidate: Candidate) -> Candidate:
        if self.interaction_counts is None:
            return candidate
        return dataclasses.replace(
            candidate, data_points=self.interaction_counts.get(candidate.candidate_id)
        )
