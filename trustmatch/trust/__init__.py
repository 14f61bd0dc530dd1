"""Cross-service trust aggregation module."""

from .aggregator import (
    TrustAggregator,
    TrustAggregatorConfig,
    compute_cross_service_trust,
    to_trust_vector,
)

__all__ = [
    "TrustAggregator",
    "TrustAggregatorConfig",
    "compute_cross_service_trust",
    "to_trust_vector",
]
