"""
Compatibility scoring between two actors, or an actor and a project.

Combines four components into one score:
- Vision alignment: do the two actors want to build the same thing?
- Skill complementarity: does the candidate fill the project's skill gap?
- Trust: the candidate's composite cross-service trust
- Psychological fit: externally supplied personality compatibility

Weighting Formula (weighted_sum mode):
    personalized = w_v * V + w_c * C + w_t * T + w_p * P
    baseline     = b_v * V + b_t * T
    score        = p * personalized + (1 - p) * baseline

Stage weights (w_*) depend on the project lifecycle stage: early stages
weight vision and psychological fit, later stages weight skills and trust.
The personalization factor p comes from the cold-start strategy of the
requesting actor, so sparse-history actors lean on broadly applicable
signals. The geometric_mean mode replaces the weighted sum with a
weighted geometric mean, so any zero component zeroes the personalized
score.
"""

import logging
import math
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, List, Optional, Sequence

import numpy as np
from joblib import Parallel, delayed

from ..cold_start.strategy import StrategySelector, StrategyDecision
from ..exceptions import ConfigError, InvalidInputError
from ..profiles.schema import (
    Candidate,
    CompatibilityResult,
    DreamDna,
    LifecycleStage,
    Project,
    ServiceTrustSignal,
)
from ..statistics.primitives import confidence_factor
from ..trust.aggregator import TrustAggregator
from .vectors import (
    check_same_length,
    compute_gap_vector,
    compute_skill_complementarity,
    compute_vision_alignment,
)

logger = logging.getLogger(__name__)

COMPONENTS = ("vision", "skill", "trust", "psych")
SCORING_MODES = ("weighted_sum", "geometric_mean")

DEFAULT_STAGE_WEIGHTS: Dict[str, Dict[str, float]] = {
    "IDEATION": {"vision": 0.45, "skill": 0.15, "trust": 0.10, "psych": 0.30},
    "BUILDING": {"vision": 0.25, "skill": 0.35, "trust": 0.25, "psych": 0.15},
    "SCALING": {"vision": 0.10, "skill": 0.40, "trust": 0.40, "psych": 0.10},
}

DEFAULT_BASELINE_WEIGHTS: Dict[str, float] = {"vision": 0.5, "trust": 0.5}

_WEIGHT_TOLERANCE = 1e-6


@dataclass
class CompatibilityConfig:
    """
    Configuration for compatibility scoring.

    Attributes:
        mode: "weighted_sum" or "geometric_mean"
        stage_weights: Stage name -> component weights (vision, skill, trust, psych)
        baseline_weights: Weights of the broadly applicable signals (vision, trust)
        default_psych_fit: Psychological fit used when none is supplied
        apply_confidence: Damp scores by 1 - e^{-k n} of the requester's history
        confidence_k: Decay constant for the confidence damping
    """
    mode: str = "weighted_sum"
    stage_weights: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_STAGE_WEIGHTS.items()}
    )
    baseline_weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BASELINE_WEIGHTS))
    default_psych_fit: float = 0.5
    apply_confidence: bool = False
    confidence_k: float = 0.05

    def validate(self) -> None:
        """Validate weight tables and ranges."""
        if self.mode not in SCORING_MODES:
            raise ConfigError(f"Unknown scoring mode: {self.mode}")
        if not 0 <= self.default_psych_fit <= 1:
            raise ConfigError(f"default_psych_fit must be in [0, 1], got {self.default_psych_fit}")
        if self.confidence_k <= 0:
            raise ConfigError(f"confidence_k must be positive, got {self.confidence_k}")

        for stage in LifecycleStage:
            if stage.value not in self.stage_weights:
                raise ConfigError(f"Missing stage weights for {stage.value}")
            weights = self.stage_weights[stage.value]
            if set(weights) != set(COMPONENTS):
                raise ConfigError(
                    f"Stage weights for {stage.value} must define exactly {COMPONENTS}, got {sorted(weights)}"
                )
            if any(w < 0 for w in weights.values()):
                raise ConfigError(f"Stage weights for {stage.value} must be non-negative")
            total = sum(weights.values())
            if abs(total - 1.0) > _WEIGHT_TOLERANCE:
                raise ConfigError(f"Stage weights for {stage.value} don't sum to 1: {total}")

        # Chemistry matters most before execution, delivery risk afterwards
        stages = [s.value for s in LifecycleStage]
        for earlier, later in zip(stages, stages[1:]):
            w_early = self.stage_weights[earlier]
            w_late = self.stage_weights[later]
            for key in ("vision", "psych"):
                if w_late[key] > w_early[key]:
                    raise ConfigError(f"{key} weight must not increase from {earlier} to {later}")
            for key in ("skill", "trust"):
                if w_late[key] < w_early[key]:
                    raise ConfigError(f"{key} weight must not decrease from {earlier} to {later}")

        if set(self.baseline_weights) - {"vision", "trust"}:
            raise ConfigError(
                f"Baseline weights may only use vision and trust, got {sorted(self.baseline_weights)}"
            )
        if abs(sum(self.baseline_weights.values()) - 1.0) > _WEIGHT_TOLERANCE:
            raise ConfigError(f"Baseline weights don't sum to 1: {sum(self.baseline_weights.values())}")

    def weights_for(self, stage: LifecycleStage) -> Dict[str, float]:
        """Component weights for a lifecycle stage."""
        return dict(self.stage_weights[stage.value])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CompatibilityConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "CompatibilityConfig":
        """Create from main config dictionary."""
        compat_config = config.get("compatibility", {})
        defaults = cls()
        return cls(
            mode=compat_config.get("mode", defaults.mode),
            stage_weights=compat_config.get("stage_weights", defaults.stage_weights),
            baseline_weights=compat_config.get("baseline_weights", defaults.baseline_weights),
            default_psych_fit=compat_config.get("default_psych_fit", defaults.default_psych_fit),
            apply_confidence=compat_config.get("apply_confidence", defaults.apply_confidence),
            confidence_k=compat_config.get("confidence_k", defaults.confidence_k)
        )


@dataclass
class ScoringContext:
    """
    Project-side context for one compatibility computation.

    Attributes:
        required_skills: Skill vector the project requires
        team_skills: Aggregated skill vector of the current team
        stage: Project lifecycle stage
        psych_fit: Psychological fit of the pair (None = configured default)
        data_points: Interaction history count of the requesting actor
        trust_signals: Fresh trust signals for the candidate; when given they
            replace the stored composite trust
    """
    required_skills: Sequence[float]
    team_skills: Sequence[float]
    stage: LifecycleStage = LifecycleStage.BUILDING
    psych_fit: Optional[float] = None
    data_points: int = 0
    trust_signals: Optional[List[ServiceTrustSignal]] = None

    def __post_init__(self):
        if isinstance(self.stage, str):
            try:
                self.stage = LifecycleStage(self.stage.upper())
            except ValueError:
                raise InvalidInputError(f"Unknown lifecycle stage: {self.stage}")
        if self.data_points < 0:
            raise InvalidInputError(f"data_points must be non-negative, got {self.data_points}")
        if self.psych_fit is not None and not math.isfinite(self.psych_fit):
            raise InvalidInputError(f"psych_fit must be finite, got {self.psych_fit}")
        check_same_length(self.required_skills, self.team_skills, "Skill")

    @classmethod
    def for_project(cls, project: Project, candidate: Candidate, default_psych_fit: float = 0.5) -> "ScoringContext":
        """Context for scoring a candidate against a project (project's view)."""
        return cls(
            required_skills=project.required_skills,
            team_skills=project.team_skills,
            stage=project.stage,
            psych_fit=candidate.psych_fit_for(project.project_id, default_psych_fit),
            data_points=project.data_points
        )

    @classmethod
    def for_candidate(cls, project: Project, candidate: Candidate, default_psych_fit: float = 0.5) -> "ScoringContext":
        """Context for a candidate evaluating a project (candidate's view)."""
        return cls(
            required_skills=project.required_skills,
            team_skills=candidate.dna.capability.skill_vector,
            stage=project.stage,
            psych_fit=candidate.psych_fit_for(project.project_id, default_psych_fit),
            data_points=candidate.data_points
        )


class CompatibilityScorer:
    """
    Compatibility scorer combining vision, skills, trust and psychological fit.

    Stateless once constructed: the same scorer may be shared across threads.

    Attributes:
        config: CompatibilityConfig with weight tables
        aggregator: TrustAggregator used when fresh trust signals are supplied
        selector: StrategySelector choosing the cold-start recipe
    """

    def __init__(
        self,
        config: Optional[CompatibilityConfig] = None,
        aggregator: Optional[TrustAggregator] = None,
        selector: Optional[StrategySelector] = None
    ):
        """
        Initialize the scorer.

        Args:
            config: CompatibilityConfig instance (defaults when omitted)
            aggregator: TrustAggregator instance
            selector: StrategySelector instance
        """
        self.config = config or CompatibilityConfig()
        self.config.validate()
        self.aggregator = aggregator or TrustAggregator()
        self.selector = selector or StrategySelector()
        logger.info(f"Initialized CompatibilityScorer with mode={self.config.mode}")

    def score(self, actor_a: DreamDna, actor_b: DreamDna, context: ScoringContext) -> CompatibilityResult:
        """
        Compute compatibility of actor_b (candidate) for actor_a (requester).

        Args:
            actor_a: Requesting actor (e.g. the project owner)
            actor_b: Candidate actor being evaluated
            context: Project-side scoring context

        Returns:
            CompatibilityResult with the composite score and its components

        Raises:
            InvalidInputError: On mismatched vector lengths
        """
        check_same_length(actor_b.capability.skill_vector, context.required_skills, "Skill")

        vision = compute_vision_alignment(
            actor_a.identity.vision_embedding,
            actor_b.identity.vision_embedding
        )

        gap = compute_gap_vector(context.required_skills, context.team_skills)
        complementarity = compute_skill_complementarity(actor_b.capability.skill_vector, gap)

        if context.trust_signals is not None:
            trust = self.aggregator.aggregate(context.trust_signals)
        else:
            trust = actor_b.trust.composite_trust

        psych = self.config.default_psych_fit if context.psych_fit is None else context.psych_fit
        psych = float(np.clip(psych, 0.0, 1.0))

        decision = self.selector.select(context.data_points)
        weights = self.config.weights_for(context.stage)

        components = {"vision": vision, "skill": complementarity, "trust": trust, "psych": psych}
        score = self._combine(components, weights, decision, context.data_points)

        return CompatibilityResult(
            score=score,
            vision_alignment=float(vision),
            complementarity=float(complementarity),
            trust_score=float(trust),
            psych_fit=psych,
            strategy=decision.strategy.value,
            explanation=decision.explanation,
            weights_used=weights
        )

    def score_project(self, project: Project, candidate: Candidate) -> CompatibilityResult:
        """Score a candidate from the project's point of view (owner -> candidate)."""
        if project.owner is None or candidate.dna is None:
            raise InvalidInputError(
                f"Profile-based scoring of {candidate.candidate_id} for {project.project_id} "
                f"needs both the project owner and candidate profiles"
            )
        context = ScoringContext.for_project(project, candidate, self.config.default_psych_fit)
        return self.score(project.owner, candidate.dna, context)

    def score_candidate_view(self, project: Project, candidate: Candidate) -> CompatibilityResult:
        """Score a project from the candidate's point of view (candidate -> owner)."""
        if project.owner is None or candidate.dna is None:
            raise InvalidInputError(
                f"Profile-based scoring of {project.project_id} for {candidate.candidate_id} "
                f"needs both the project owner and candidate profiles"
            )
        context = ScoringContext.for_candidate(project, candidate, self.config.default_psych_fit)
        return self.score(candidate.dna, project.owner, context)

    def score_many(
        self,
        actor_a: DreamDna,
        candidates: Sequence[DreamDna],
        context: ScoringContext,
        n_jobs: int = 1
    ) -> List[CompatibilityResult]:
        """
        Compute compatibility for many candidates against one context.

        Args:
            actor_a: Requesting actor
            candidates: Candidate profiles
            context: Shared scoring context
            n_jobs: Worker threads (-1 uses all cores)

        Returns:
            List of CompatibilityResult objects, in candidate order
        """
        logger.debug(f"Scoring {len(candidates)} candidates for {actor_a.user_id} with n_jobs={n_jobs}")
        return Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(self.score)(actor_a, candidate, context) for candidate in candidates
        )

    def _combine(
        self,
        components: Dict[str, float],
        weights: Dict[str, float],
        decision: StrategyDecision,
        data_points: int
    ) -> float:
        """Blend personalized and baseline scores, then clamp to [0, 1]."""
        if self.config.mode == "weighted_sum":
            personalized = sum(weights[k] * components[k] for k in COMPONENTS)
        elif self.config.mode == "geometric_mean":
            personalized = self._weighted_geometric_mean(components, weights)
        else:
            raise ConfigError(f"Unknown scoring mode: {self.config.mode}")

        baseline = sum(w * components[k] for k, w in self.config.baseline_weights.items())

        p = decision.personalization
        score = p * personalized + (1 - p) * baseline

        if self.config.apply_confidence:
            score *= confidence_factor(data_points, self.config.confidence_k)

        return float(np.clip(score, 0.0, 1.0))

    @staticmethod
    def _weighted_geometric_mean(components: Dict[str, float], weights: Dict[str, float]) -> float:
        """
        Weighted geometric mean.

        Formula: (prod x_k^{w_k})^(1 / sum w_k); zero if any weighted factor is zero.
        """
        w_sum = sum(weights.values())
        product = 1.0
        for key in COMPONENTS:
            if weights[key] == 0:
                continue
            if components[key] <= 0:
                return 0.0
            product *= components[key] ** weights[key]
        return product ** (1.0 / w_sum)


def create_scorer_from_config(config: Dict[str, Any]) -> CompatibilityScorer:
    """
    Factory function to create a CompatibilityScorer from config.

    Args:
        config: Main configuration dictionary

    Returns:
        Configured CompatibilityScorer instance
    """
    from ..cold_start.strategy import ColdStartPolicy
    from ..trust.aggregator import TrustAggregatorConfig

    return CompatibilityScorer(
        config=CompatibilityConfig.from_config(config),
        aggregator=TrustAggregator(TrustAggregatorConfig.from_config(config)),
        selector=StrategySelector(ColdStartPolicy.from_config(config))
    )
