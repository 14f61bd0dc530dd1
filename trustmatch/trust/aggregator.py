"""
Cross-service trust aggregation.

This module combines the trust signals emitted by independent services
into one composite score. Services report on different scales and with
very different amounts of evidence, so signals are normalized before
they are combined and weak evidence is pulled toward a neutral prior.

Aggregation Formula:
    z_i      = (score_i - mean_i) / std_i          (0 when std_i == 0, clipped to +-1e6)
    w_i      = reliability_i / sum(reliability)
    combined = sum(w_i * z_i)
    shrunk   = (n_eff * combined + m * prior) / (n_eff + m),  n_eff = sum(reliability)
    trust    = sigmoid(shrunk)

Signals with zero reliability are dropped before normalizing. The result
always lies strictly inside (0, 1).
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional, Sequence

import numpy as np

from ..exceptions import InvalidInputError
from ..profiles.schema import ServiceTrustSignal, TrustVector
from ..statistics.primitives import sigmoid

logger = logging.getLogger(__name__)

# Keeps the squashed value off the closed endpoints when expit saturates
_OPEN_INTERVAL_EPS = 1e-12

# Bound on |z| so overflowing normalizations stay finite
_Z_LIMIT = 1e6


@dataclass
class TrustAggregatorConfig:
    """
    Configuration for cross-service trust aggregation.

    Attributes:
        shrinkage_strength: Pseudo-count m pulling the result toward prior
        prior: Global prior belief for trust (0.5 = neutral)
    """
    shrinkage_strength: float = 10.0
    prior: float = 0.5

    def validate(self) -> None:
        """Validate configuration values."""
        if self.shrinkage_strength < 0:
            raise InvalidInputError(
                f"shrinkage_strength must be non-negative, got {self.shrinkage_strength}"
            )
        if not np.isfinite(self.prior):
            raise InvalidInputError(f"prior must be finite, got {self.prior}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrustAggregatorConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "TrustAggregatorConfig":
        """Create from main config dictionary."""
        trust_config = config.get("trust", {})
        return cls(
            shrinkage_strength=trust_config.get("shrinkage_strength", 10.0),
            prior=trust_config.get("prior", 0.5)
        )


def compute_cross_service_trust(
    signals: Sequence[ServiceTrustSignal],
    shrinkage_strength: float = 10.0,
    prior: float = 0.5
) -> float:
    """
    Compute a single composite trust score from multiple service signals.

    Args:
        signals: Trust signals, zero or more
        shrinkage_strength: Bayesian shrinkage pseudo-count m (default 10)
        prior: Global prior (default 0.5)

    Returns:
        Composite trust in (0, 1); exactly `prior` when there is no evidence

    Raises:
        InvalidInputError: On negative reliability/std or negative shrinkage
    """
    TrustAggregatorConfig(shrinkage_strength=shrinkage_strength, prior=prior).validate()

    if len(signals) == 0:
        return prior

    signals = [s if isinstance(s, ServiceTrustSignal) else ServiceTrustSignal.from_dict(s)
               for s in signals]

    scores = np.array([s.score for s in signals], dtype=float)
    means = np.array([s.mean for s in signals], dtype=float)
    stds = np.array([s.std for s in signals], dtype=float)
    reliability = np.array([s.reliability for s in signals], dtype=float)

    # Signals without evidence are left out entirely
    keep = reliability > 0
    if not keep.any():
        return prior
    scores, means, stds, reliability = scores[keep], means[keep], stds[keep], reliability[keep]

    # Z-normalize; a zero std carries no information
    safe_std = np.where(stds == 0, 1.0, stds)
    with np.errstate(over="ignore"):
        raw_z = (scores - means) / safe_std
    z_scores = np.where(stds == 0, 0.0, np.clip(raw_z, -_Z_LIMIT, _Z_LIMIT))

    # Scale before summing so huge reliabilities cannot overflow
    scaled = reliability / reliability.max()
    weights = scaled / scaled.sum()
    combined = float(np.dot(weights, z_scores))

    with np.errstate(over="ignore"):
        n_eff = float(reliability.sum())
    m = shrinkage_strength
    shrunk = combined + (prior - combined) * (m / (n_eff + m))

    trust = float(np.clip(sigmoid(shrunk), _OPEN_INTERVAL_EPS, 1 - _OPEN_INTERVAL_EPS))

    logger.debug(
        f"Aggregated {len(signals)} signals: combined={combined:.4f}, "
        f"n_eff={n_eff:.2f}, trust={trust:.4f}"
    )
    return trust


class TrustAggregator:
    """
    Configured cross-service trust aggregator.

    Thin stateless wrapper that binds a TrustAggregatorConfig so callers
    can pass one object around instead of repeating options.

    Attributes:
        config: TrustAggregatorConfig with aggregation parameters
    """

    def __init__(self, config: Optional[TrustAggregatorConfig] = None):
        self.config = config or TrustAggregatorConfig()
        self.config.validate()
        logger.info(
            f"Initialized TrustAggregator with shrinkage_strength={self.config.shrinkage_strength}, "
            f"prior={self.config.prior}"
        )

    def aggregate(
        self,
        signals: Sequence[ServiceTrustSignal],
        shrinkage_strength: Optional[float] = None,
        prior: Optional[float] = None
    ) -> float:
        """Aggregate signals, optionally overriding the configured options."""
        return compute_cross_service_trust(
            signals,
            shrinkage_strength=self.config.shrinkage_strength if shrinkage_strength is None else shrinkage_strength,
            prior=self.config.prior if prior is None else prior
        )

    def trust_vector(self, signals: List[ServiceTrustSignal], **components: float) -> TrustVector:
        """Build a TrustVector whose composite is computed from the signals."""
        return TrustVector.from_signals(
            signals,
            shrinkage_strength=self.config.shrinkage_strength,
            prior=self.config.prior,
            **components
        )


def to_trust_vector(
    composite_score: float,
    components: Optional[Dict[str, float]] = None
) -> TrustVector:
    """
    Build a TrustVector from a composite score and component signals.

    Args:
        composite_score: Aggregated trust (0, 1)
        components: Optional offline_reputation, doorbell_response_rate,
            delivery_compliance (missing values default to 0)

    Returns:
        TrustVector instance
    """
    components = components or {}
    return TrustVector(
        offline_reputation=components.get("offline_reputation", 0.0),
        doorbell_response_rate=components.get("doorbell_response_rate", 0.0),
        delivery_compliance=components.get("delivery_compliance", 0.0),
        composite_trust=composite_score
    )
