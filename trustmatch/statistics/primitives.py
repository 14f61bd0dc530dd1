"""
Statistical primitives for reputation scoring.

This module contains the stateless scoring functions every other component
builds on. None of them keep state and all of them are safe to call
concurrently.

Primitives:
- Wilson lower bound: conservative bound on a positive-feedback proportion
- Bayesian average: shrink a small-sample rating toward a global mean
- Exponential half-life decay with a permanent baseline of 1
- Confidence factor: 1 - e^{-k n} damping for low-evidence scores

Wilson Lower Bound Formula:
    p = positive / n
    lower = (p + z^2/2n - z * sqrt(p(1-p)/n + z^2/4n^2)) / (1 + z^2/n)

Decay Formula:
    decayed = old * 2^(-elapsed / half_life) + 1
"""

import logging
import math
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, Optional

from scipy.special import expit
from scipy.stats import norm

from ..exceptions import InvalidInputError

logger = logging.getLogger(__name__)

# Half-life in days per service category. Long-form contributions (journaling)
# decay slowly; attendance-type signals (check-ins) decay fast.
SERVICE_HALF_LIFE: Dict[str, float] = {
    "brain": 180,
    "planner": 120,
    "store": 90,
    "place": 60,
    "cafe": 30,
}


@dataclass
class StatisticsConfig:
    """
    Configuration for the statistical primitives.

    Attributes:
        wilson_confidence: Two-sided confidence level for the Wilson bound
        half_life_days: Half-life per service category (days)
    """
    wilson_confidence: float = 0.95
    half_life_days: Dict[str, float] = field(default_factory=lambda: dict(SERVICE_HALF_LIFE))

    def validate(self) -> None:
        """Validate configuration values."""
        if not 0 < self.wilson_confidence < 1:
            raise InvalidInputError(
                f"wilson_confidence must be in (0, 1), got {self.wilson_confidence}"
            )
        for service, half_life in self.half_life_days.items():
            if half_life <= 0:
                raise InvalidInputError(f"Half-life for {service} must be positive, got {half_life}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StatisticsConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "StatisticsConfig":
        """Create from main config dictionary."""
        stats_config = config.get("statistics", {})
        half_lives = dict(SERVICE_HALF_LIFE)
        half_lives.update(stats_config.get("half_life_days", {}))
        return cls(
            wilson_confidence=stats_config.get("wilson_confidence", 0.95),
            half_life_days=half_lives
        )


def confidence_to_z(confidence: float) -> float:
    """
    Convert a two-sided confidence level to its normal quantile.

    0.95 -> 1.96, 0.99 -> 2.576
    """
    if not 0 < confidence < 1:
        raise InvalidInputError(f"confidence must be in (0, 1), got {confidence}")
    return float(norm.ppf(1 - (1 - confidence) / 2))


def wilson_lower_bound(positive: float, negative: float, confidence: float = 0.95) -> float:
    """
    Lower bound of the Wilson score interval for a positive-feedback proportion.

    Prevents an actor with a handful of perfect ratings from outranking one
    with many good-but-imperfect ratings.

    Args:
        positive: Number of positive observations
        negative: Number of negative observations
        confidence: Two-sided confidence level (default 0.95, z = 1.96)

    Returns:
        Lower bound in [0, 1]; 0 when there are no observations

    Raises:
        InvalidInputError: If a count is negative or confidence is outside (0, 1)
    """
    if positive < 0 or negative < 0:
        raise InvalidInputError(
            f"Counts must be non-negative, got positive={positive}, negative={negative}"
        )

    n = positive + negative
    if n == 0:
        return 0.0

    z = confidence_to_z(confidence)
    p_hat = positive / n
    z2 = z * z

    centre = p_hat + z2 / (2 * n)
    margin = z * math.sqrt((p_hat * (1 - p_hat) + z2 / (4 * n)) / n)
    lower = (centre - margin) / (1 + z2 / n)

    return min(1.0, max(0.0, lower))


def bayesian_average(
    user_rating: float,
    rating_count: float,
    min_threshold: float,
    global_mean: float
) -> float:
    """
    Bayesian (IMDB-style) weighted rating.

    Formula: (v / (v + m)) * R + (m / (v + m)) * C

    Args:
        user_rating: The actor's own mean rating R
        rating_count: Number of ratings v
        min_threshold: Count m at which R and C are weighted equally
        global_mean: Population mean C

    Returns:
        Shrunk rating; converges to R as v grows and to C as v -> 0
    """
    if rating_count < 0:
        raise InvalidInputError(f"rating_count must be non-negative, got {rating_count}")
    if min_threshold < 0:
        raise InvalidInputError(f"min_threshold must be non-negative, got {min_threshold}")

    total = rating_count + min_threshold
    if total == 0:
        return float(global_mean)

    return (rating_count / total) * user_rating + (min_threshold / total) * global_mean


def apply_time_decay(old_score: float, elapsed_days: float, half_life_days: float) -> float:
    """
    Exponential half-life decay with a permanent +1 baseline.

    Args:
        old_score: Score before decay
        elapsed_days: Days since the score was last refreshed
        half_life_days: Days for the decaying part to halve

    Returns:
        old_score * 2^(-elapsed / half_life) + 1
    """
    if elapsed_days < 0:
        raise InvalidInputError(f"elapsed_days must be non-negative, got {elapsed_days}")
    if half_life_days <= 0:
        raise InvalidInputError(f"half_life_days must be positive, got {half_life_days}")

    return old_score * math.pow(2.0, -elapsed_days / half_life_days) + 1


def apply_service_time_decay(
    old_score: float,
    elapsed_days: float,
    service: str,
    half_lives: Optional[Dict[str, float]] = None
) -> float:
    """
    Time decay using the half-life registered for a service category.

    Args:
        old_score: Score before decay
        elapsed_days: Days since last refresh
        service: Service category tag (e.g. "brain", "cafe")
        half_lives: Optional override of SERVICE_HALF_LIFE

    Returns:
        Decayed score
    """
    table = half_lives if half_lives is not None else SERVICE_HALF_LIFE
    if service not in table:
        raise InvalidInputError(
            f"Unknown service category: {service}. Known: {sorted(table)}"
        )
    return apply_time_decay(old_score, elapsed_days, table[service])


def confidence_factor(n: float, k: float = 0.05) -> float:
    """
    Confidence(n) = 1 - e^{-k n}

    Fewer data points give a lower factor; reaches ~0.95 at n = 60 for k = 0.05.
    """
    if n < 0:
        raise InvalidInputError(f"Data point count must be non-negative, got {n}")
    return 1.0 - math.exp(-k * n)


def z_normalize(score: float, mean: float, std: float) -> float:
    """Z-score a raw value; a zero std carries no information and maps to 0."""
    if std == 0:
        return 0.0
    return (score - mean) / std


def sigmoid(x: float) -> float:
    """Logistic squash of any real number into (0, 1)."""
    return float(expit(x))
