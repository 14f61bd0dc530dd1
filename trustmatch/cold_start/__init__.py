"""Cold-start strategy selection and profile bootstrapping."""

from .strategy import (
    ColdStartStage,
    ColdStartPolicy,
    StrategyTier,
    StrategyDecision,
    StrategySelector,
    get_recommendation_strategy,
)
from .bootstrap import (
    ThoughtRecord,
    CategoryProfile,
    ServiceProfile,
    TransferMapping,
    BetaPosterior,
    BanditRecommendation,
    BanditStateRepository,
    InMemoryBanditStateRepository,
    InteractionCountRepository,
    InMemoryInteractionCountRepository,
    ThompsonSampler,
    initialize_from_content,
    learn_transfer_mapping,
    transfer_from_active_service,
)

__all__ = [
    "ColdStartStage",
    "ColdStartPolicy",
    "StrategyTier",
    "StrategyDecision",
    "StrategySelector",
    "get_recommendation_strategy",
    "ThoughtRecord",
    "CategoryProfile",
    "ServiceProfile",
    "TransferMapping",
    "BetaPosterior",
    "BanditRecommendation",
    "BanditStateRepository",
    "InMemoryBanditStateRepository",
    "InteractionCountRepository",
    "InMemoryInteractionCountRepository",
    "ThompsonSampler",
    "initialize_from_content",
    "learn_transfer_mapping",
    "transfer_from_active_service",
]
