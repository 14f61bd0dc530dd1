"""
Trust & Matching Core

This package implements the algorithmic core shared by the platform
services: a composite trust score synthesized from per-service signals,
and a stable, capacity-respecting assignment of candidates to projects.

Key Design Decisions:
- Every component is a pure function (or stateless object) over explicit inputs
- Stateful helpers (bandit posteriors, interaction counts) live behind
  repositories that callers pass in
- Instability is reported as data, never raised
- All tunable policy (stage weights, cold-start tiers, half-lives) is
  configuration, not code
"""

__version__ = "1.0.0"
