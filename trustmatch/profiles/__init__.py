"""
Profile and result schema.

This module defines the records exchanged with callers: actor profiles,
projects, candidates, trust signals, and matching results.
"""

from .schema import (
    LifecycleStage,
    ServiceTag,
    ServiceTrustSignal,
    TrustVector,
    IdentityVector,
    CapabilityVector,
    ExecutionVector,
    DreamDna,
    Project,
    Candidate,
    MatchResult,
    BlockingPair,
    CompatibilityResult,
)

__all__ = [
    "LifecycleStage",
    "ServiceTag",
    "ServiceTrustSignal",
    "TrustVector",
    "IdentityVector",
    "CapabilityVector",
    "ExecutionVector",
    "DreamDna",
    "Project",
    "Candidate",
    "MatchResult",
    "BlockingPair",
    "CompatibilityResult",
]
