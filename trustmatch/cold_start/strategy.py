"""
Cold-start strategy selection.

Chooses which scoring recipe applies to an actor based on how much
interaction history exists for them. Actors with sparse history are
scored mostly on broadly applicable signals (category fit, reputation);
actors with rich history are scored on personalized compatibility.

Default Tiers:
    0-5     CONTENT_INIT              content-based initialization
    6-20    CROSS_DOMAIN_TRANSFER     transfer from another active service
    21-50   BANDIT_EXPLORE            Thompson sampling exploration
    51+     COLLABORATIVE_FILTERING   fully personalized

Thresholds and personalization factors are a tunable policy table,
loaded from the `cold_start` config section.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from ..exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class ColdStartStage(Enum):
    """Cold-start strategy tags, from sparse to rich history."""
    CONTENT_INIT = "CONTENT_INIT"
    CROSS_DOMAIN_TRANSFER = "CROSS_DOMAIN_TRANSFER"
    BANDIT_EXPLORE = "BANDIT_EXPLORE"
    COLLABORATIVE_FILTERING = "COLLABORATIVE_FILTERING"


STRATEGY_EXPLANATIONS: Dict[ColdStartStage, str] = {
    ColdStartStage.CONTENT_INIT:
        "Very little history: recommendations lean on category fit and reputation "
        "inferred from the actor's first journal entries.",
    ColdStartStage.CROSS_DOMAIN_TRANSFER:
        "Some history: the profile is transferred from the service the actor is "
        "most active in and blended with broadly applicable signals.",
    ColdStartStage.BANDIT_EXPLORE:
        "Moderate history: recommendations explore candidates while favouring "
        "those with positive feedback so far.",
    ColdStartStage.COLLABORATIVE_FILTERING:
        "Rich history: recommendations are fully personalized from accumulated "
        "cross-service signals.",
}


@dataclass
class StrategyTier:
    """
    One row of the cold-start policy table.

    Attributes:
        strategy: Strategy tag for this tier
        max_interactions: Inclusive upper bound of the tier (None = unbounded)
        personalization: Share of the personalized score in the blend [0, 1]
    """
    strategy: ColdStartStage
    max_interactions: Optional[int]
    personalization: float

    def __post_init__(self):
        if isinstance(self.strategy, str):
            self.strategy = ColdStartStage(self.strategy)
        if not 0 <= self.personalization <= 1:
            raise InvalidInputError(
                f"personalization must be in [0, 1], got {self.personalization}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "max_interactions": self.max_interactions,
            "personalization": self.personalization
        }


def _default_tiers() -> List[StrategyTier]:
    return [
        StrategyTier(ColdStartStage.CONTENT_INIT, 5, 0.25),
        StrategyTier(ColdStartStage.CROSS_DOMAIN_TRANSFER, 20, 0.5),
        StrategyTier(ColdStartStage.BANDIT_EXPLORE, 50, 0.75),
        StrategyTier(ColdStartStage.COLLABORATIVE_FILTERING, None, 1.0),
    ]


@dataclass
class ColdStartPolicy:
    """
    Tunable cold-start policy table.

    Tiers are checked in order; the first whose max_interactions bounds the
    count wins. The last tier must be unbounded so selection is total.
    """
    tiers: List[StrategyTier] = field(default_factory=_default_tiers)

    def validate(self) -> None:
        """Validate tier ordering and totality."""
        if len(self.tiers) < 2:
            raise InvalidInputError("Cold-start policy needs at least two tiers (sparse vs. rich)")
        if self.tiers[-1].max_interactions is not None:
            raise InvalidInputError("Last cold-start tier must be unbounded (max_interactions: null)")

        bounds = [t.max_interactions for t in self.tiers[:-1]]
        if any(b is None or b < 0 for b in bounds):
            raise InvalidInputError(f"Only the last tier may be unbounded: {bounds}")
        if bounds != sorted(set(bounds)):
            raise InvalidInputError(f"Tier thresholds must be strictly increasing: {bounds}")

        personalization = [t.personalization for t in self.tiers]
        if personalization != sorted(personalization):
            logger.warning(
                f"Cold-start personalization is not non-decreasing with history: {personalization}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"tiers": [t.to_dict() for t in self.tiers]}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ColdStartPolicy":
        """Create from dictionary."""
        return cls(tiers=[StrategyTier(**t) for t in d["tiers"]])

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ColdStartPolicy":
        """Create from main config dictionary."""
        cold_start_config = config.get("cold_start", {})
        if "tiers" not in cold_start_config:
            return cls()
        return cls.from_dict(cold_start_config)


@dataclass
class StrategyDecision:
    """Strategy chosen for one actor."""
    strategy: ColdStartStage
    personalization: float
    explanation: str
    data_points: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "personalization": self.personalization,
            "explanation": self.explanation,
            "data_points": self.data_points
        }


class StrategySelector:
    """
    Selects a cold-start strategy from an actor's interaction count.

    Attributes:
        policy: ColdStartPolicy table
    """

    def __init__(self, policy: Optional[ColdStartPolicy] = None):
        self.policy = policy or ColdStartPolicy()
        self.policy.validate()
        logger.info(
            f"Initialized StrategySelector with tiers="
            f"{[(t.strategy.value, t.max_interactions) for t in self.policy.tiers]}"
        )

    def select(self, data_points: int) -> StrategyDecision:
        """
        Choose the strategy for an actor.

        Args:
            data_points: Number of historical interactions (non-negative)

        Returns:
            StrategyDecision with tag, personalization factor and explanation
        """
        tier = _find_tier(self.policy, data_points)
        return StrategyDecision(
            strategy=tier.strategy,
            personalization=tier.personalization,
            explanation=STRATEGY_EXPLANATIONS[tier.strategy],
            data_points=int(data_points)
        )


def _find_tier(policy: ColdStartPolicy, data_points: int) -> StrategyTier:
    if data_points < 0:
        raise InvalidInputError(f"Interaction count must be non-negative, got {data_points}")

    for tier in policy.tiers:
        if tier.max_interactions is None or data_points <= tier.max_interactions:
            return tier

    # Unreachable once validate() has passed
    raise InvalidInputError(f"No cold-start tier covers {data_points} interactions")


def get_recommendation_strategy(
    interaction_count: int,
    policy: Optional[ColdStartPolicy] = None
) -> ColdStartStage:
    """
    Determine the cold-start strategy tag for an interaction count.

    Args:
        interaction_count: Number of historical interactions
        policy: Optional policy table (defaults to the standard tiers)

    Returns:
        ColdStartStage tag
    """
    policy = policy or ColdStartPolicy()
    policy.validate()
    return _find_tier(policy, interaction_count).strategy
