"""Statistical primitives for reputation scoring."""

from .primitives import (
    SERVICE_HALF_LIFE,
    StatisticsConfig,
    confidence_to_z,
    wilson_lower_bound,
    bayesian_average,
    apply_time_decay,
    apply_service_time_decay,
    confidence_factor,
    z_normalize,
    sigmoid,
)

__all__ = [
    "SERVICE_HALF_LIFE",
    "StatisticsConfig",
    "confidence_to_z",
    "wilson_lower_bound",
    "bayesian_average",
    "apply_time_decay",
    "apply_service_time_decay",
    "confidence_factor",
    "z_normalize",
    "sigmoid",
]
