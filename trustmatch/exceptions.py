"""
Exception hierarchy for the trust & matching core.
"""


class TrustMatchError(Exception):
    """Base exception for all core errors."""
    pass


class InvalidInputError(TrustMatchError, ValueError):
    """Raised on structurally invalid input (vector lengths, negative counts, ...)."""
    pass


class ConfigError(TrustMatchError, ValueError):
    """Raised when a configuration section is invalid."""
    pass


class MatchingConvergenceError(TrustMatchError, RuntimeError):
    """Raised when deferred acceptance exceeds its proposal bound."""
    pass
