"""
Cold-start profile bootstrapping.

Each cold-start tier has a way of producing a usable profile or
recommendation before rich history exists:

- CONTENT_INIT: initialize an embedding from the categories of the
  actor's first journal entries
      u_init = sum(w_c * mu_c) / sum(w_c)
- CROSS_DOMAIN_TRANSFER: map a profile from the service the actor is
  active in to the target service with a ridge-regression linear map
      u_target = W u_source
- BANDIT_EXPLORE: Thompson sampling over Beta posteriors
      theta_k ~ Beta(alpha_k, beta_k),  pick argmax_k theta_k

Mutable state (bandit posteriors, interaction counts) lives behind the
repository interfaces below; callers pass a repository in rather than
relying on module-level globals.
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Any, List, Optional, Sequence, Tuple

import joblib
import numpy as np
from sklearn.linear_model import Ridge

from ..exceptions import InvalidInputError

logger = logging.getLogger(__name__)


# =============================================================================
# Content-based initialization
# =============================================================================

@dataclass
class ThoughtRecord:
    """A journal entry with its extracted category."""
    thought_id: str
    category: str
    embedding: Tuple[float, ...] = ()


@dataclass
class CategoryProfile:
    """
    Category-level aggregate over existing users.

    Attributes:
        category: Category label (e.g. "tech", "design")
        mean_embedding: Mean profile embedding of users in this category
        weight: Relevance weight of the category
    """
    category: str
    mean_embedding: Tuple[float, ...]
    weight: float = 1.0

    def __post_init__(self):
        if self.weight < 0:
            raise InvalidInputError(f"Category weight must be non-negative, got {self.weight}")


def initialize_from_content(
    thoughts: Sequence[ThoughtRecord],
    category_profiles: Sequence[CategoryProfile]
) -> np.ndarray:
    """
    Initialize a profile embedding from an actor's first journal entries.

    Args:
        thoughts: The actor's first thoughts
        category_profiles: Aggregated category profiles of existing users

    Returns:
        Initial embedding; empty when there is nothing to initialize from
    """
    if len(thoughts) == 0 or len(category_profiles) == 0:
        return np.zeros(0)

    dims = {len(p.mean_embedding) for p in category_profiles}
    if len(dims) != 1:
        raise InvalidInputError(f"Category embeddings must have same length, got {sorted(dims)}")
    dim = dims.pop()

    profiles = {p.category: p for p in category_profiles}
    counts = Counter(t.category for t in thoughts)

    result = np.zeros(dim)
    total_weight = 0.0
    for category, count in sorted(counts.items()):
        profile = profiles.get(category)
        if profile is None:
            continue
        w_c = count * profile.weight
        total_weight += w_c
        result += w_c * np.asarray(profile.mean_embedding, dtype=float)

    if total_weight > 0:
        result /= total_weight

    logger.debug(
        f"Initialized profile from {len(thoughts)} thoughts across {len(counts)} categories"
    )
    return result


# =============================================================================
# Cross-domain transfer
# =============================================================================

@dataclass
class ServiceProfile:
    """A user's profile embedding within one service."""
    user_id: str
    embedding: Tuple[float, ...]
    service: str


@dataclass
class TransferMapping:
    """
    Learned linear map between two services' embedding spaces.

    Attributes:
        source_service: Service the profile is transferred from
        target_service: Service the profile is transferred to
        weights: W matrix (target_dim x source_dim)
    """
    source_service: str
    target_service: str
    weights: np.ndarray

    def transfer(self, profile: ServiceProfile) -> ServiceProfile:
        """Apply W to a source-service profile."""
        source = np.asarray(profile.embedding, dtype=float)
        if source.shape[0] != self.weights.shape[1]:
            raise InvalidInputError(
                f"Source embedding length {source.shape[0]} does not match mapping "
                f"input dimension {self.weights.shape[1]}"
            )
        return ServiceProfile(
            user_id=profile.user_id,
            embedding=tuple(float(v) for v in self.weights @ source),
            service=self.target_service
        )

    def save(self, filepath: str) -> None:
        """
        Save mapping to disk.

        Args:
            filepath: Path to save the mapping
        """
        state = {
            "source_service": self.source_service,
            "target_service": self.target_service,
            "weights": self.weights
        }
        joblib.dump(state, filepath)
        logger.info(f"Saved transfer mapping {self.source_service}->{self.target_service} to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "TransferMapping":
        """
        Load mapping from disk.

        Args:
            filepath: Path to the saved mapping

        Returns:
            Loaded TransferMapping instance
        """
        state = joblib.load(filepath)
        logger.info(f"Loaded transfer mapping from {filepath}")
        return cls(**state)


def learn_transfer_mapping(
    overlap_users: Sequence[Tuple[ServiceProfile, ServiceProfile]],
    ridge_lambda: float = 0.01
) -> TransferMapping:
    """
    Learn a linear source -> target mapping from users active in both services.

    Minimizes sum_u ||W x_u - y_u||^2 + lambda * n * ||W||^2 (ridge regression,
    no intercept).

    Args:
        overlap_users: (source_profile, target_profile) pairs
        ridge_lambda: Regularization strength per user

    Returns:
        Learned TransferMapping
    """
    if len(overlap_users) == 0:
        raise InvalidInputError("Need at least one overlap user to learn a transfer mapping")
    if ridge_lambda < 0:
        raise InvalidInputError(f"ridge_lambda must be non-negative, got {ridge_lambda}")

    source_dims = {len(src.embedding) for src, _ in overlap_users}
    target_dims = {len(tgt.embedding) for _, tgt in overlap_users}
    if len(source_dims) != 1 or len(target_dims) != 1:
        raise InvalidInputError("All overlap users must share source and target embedding lengths")

    X = np.array([src.embedding for src, _ in overlap_users], dtype=float)
    Y = np.array([tgt.embedding for _, tgt in overlap_users], dtype=float)

    n = X.shape[0]
    model = Ridge(alpha=ridge_lambda * n, fit_intercept=False)
    model.fit(X, Y)

    source_service = overlap_users[0][0].service
    target_service = overlap_users[0][1].service
    logger.info(
        f"Learned transfer mapping {source_service}->{target_service} from {n} users "
        f"({X.shape[1]} -> {Y.shape[1]} dims)"
    )
    return TransferMapping(
        source_service=source_service,
        target_service=target_service,
        weights=np.atleast_2d(model.coef_)
    )


def transfer_from_active_service(profile: ServiceProfile, mapping: TransferMapping) -> ServiceProfile:
    """Transfer a profile to the mapping's target service."""
    return mapping.transfer(profile)


# =============================================================================
# Repositories
# =============================================================================

@dataclass
class BetaPosterior:
    """Thompson sampling posterior for one candidate: Beta(alpha, beta)."""
    alpha: float = 1.0
    beta: float = 1.0

    def to_dict(self) -> Dict[str, float]:
        return {"alpha": self.alpha, "beta": self.beta}


class BanditStateRepository(ABC):
    """Storage for per-user, per-candidate bandit posteriors."""

    @abstractmethod
    def get(self, user_id: str, candidate_id: str) -> BetaPosterior:
        """Return the posterior, Beta(1, 1) when nothing is stored."""

    @abstractmethod
    def put(self, user_id: str, candidate_id: str, posterior: BetaPosterior) -> None:
        """Store the posterior."""

    def update(
        self,
        user_id: str,
        candidate_id: str,
        fn: Callable[[BetaPosterior], BetaPosterior]
    ) -> BetaPosterior:
        """
        Apply fn to the stored posterior and store the result.

        Implementations shared between threads must make the read and the
        write one atomic step.
        """
        posterior = fn(self.get(user_id, candidate_id))
        self.put(user_id, candidate_id, posterior)
        return BetaPosterior(posterior.alpha, posterior.beta)


class InMemoryBanditStateRepository(BanditStateRepository):
    """Dictionary-backed bandit state, safe for concurrent use."""

    def __init__(self):
        self._state: Dict[str, Dict[str, BetaPosterior]] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str, candidate_id: str) -> BetaPosterior:
        with self._lock:
            stored = self._state.get(user_id, {}).get(candidate_id)
            if stored is None:
                return BetaPosterior()
            return BetaPosterior(stored.alpha, stored.beta)

    def put(self, user_id: str, candidate_id: str, posterior: BetaPosterior) -> None:
        with self._lock:
            self._state.setdefault(user_id, {})[candidate_id] = BetaPosterior(
                posterior.alpha, posterior.beta
            )

    def update(
        self,
        user_id: str,
        candidate_id: str,
        fn: Callable[[BetaPosterior], BetaPosterior]
    ) -> BetaPosterior:
        with self._lock:
            stored = self._state.get(user_id, {}).get(candidate_id) or BetaPosterior()
            updated = fn(BetaPosterior(stored.alpha, stored.beta))
            self._state.setdefault(user_id, {})[candidate_id] = BetaPosterior(updated.alpha, updated.beta)
            return BetaPosterior(updated.alpha, updated.beta)

    def clear(self) -> None:
        with self._lock:
            self._state.clear()


class InteractionCountRepository(ABC):
    """Storage for per-user interaction counts."""

    @abstractmethod
    def get(self, user_id: str) -> int:
        """Return the count, 0 for unknown users."""

    @abstractmethod
    def set(self, user_id: str, count: int) -> None:
        """Overwrite the count."""

    def increment(self, user_id: str) -> int:
        """Add one interaction and return the new count."""
        count = self.get(user_id) + 1
        self.set(user_id, count)
        return count


class InMemoryInteractionCountRepository(InteractionCountRepository):
    """Dictionary-backed interaction counts."""

    def __init__(self, counts: Optional[Dict[str, int]] = None):
        self._counts: Dict[str, int] = dict(counts or {})
        self._lock = threading.RLock()

    def get(self, user_id: str) -> int:
        with self._lock:
            return self._counts.get(user_id, 0)

    def set(self, user_id: str, count: int) -> None:
        if count < 0:
            raise InvalidInputError(f"Interaction count must be non-negative, got {count}")
        with self._lock:
            self._counts[user_id] = int(count)

    def increment(self, user_id: str) -> int:
        with self._lock:
            return super().increment(user_id)


# =============================================================================
# Thompson sampling exploration
# =============================================================================

@dataclass
class BanditRecommendation:
    """
    Result of one Thompson sampling round.

    Attributes:
        selected_id: Candidate with the highest sampled theta
        sampled_theta: The winning theta
        all_samples: (candidate_id, theta) for every candidate, in input order
    """
    selected_id: str
    sampled_theta: float
    all_samples: List[Tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selected_id": self.selected_id,
            "sampled_theta": self.sampled_theta,
            "all_samples": [{"candidate_id": c, "theta": t} for c, t in self.all_samples]
        }


class ThompsonSampler:
    """
    Thompson sampling bandit over candidate recommendations.

    Attributes:
        repository: Where posteriors are read and written
        rng: Numpy random Generator (seed it for reproducible runs); shared
            across threads, so draws are taken under a lock
    """

    def __init__(self, repository: BanditStateRepository, random_seed: Optional[int] = None):
        self.repository = repository
        self.rng = np.random.default_rng(random_seed)
        self._rng_lock = threading.Lock()

    def explore(self, user_id: str, candidate_ids: Sequence[str]) -> BanditRecommendation:
        """
        Sample theta ~ Beta(alpha, beta) per candidate and pick the argmax.

        Ties keep the earliest candidate in input order.
        """
        if len(candidate_ids) == 0:
            raise InvalidInputError("Need at least one candidate for bandit exploration")

        samples = []
        for candidate_id in candidate_ids:
            posterior = self.repository.get(user_id, candidate_id)
            with self._rng_lock:
                theta = float(self.rng.beta(posterior.alpha, posterior.beta))
            samples.append((candidate_id, theta))

        best_id, best_theta = samples[0]
        for candidate_id, theta in samples[1:]:
            if theta > best_theta:
                best_id, best_theta = candidate_id, theta

        return BanditRecommendation(selected_id=best_id, sampled_theta=best_theta, all_samples=samples)

    def update(self, user_id: str, candidate_id: str, reward: float) -> BetaPosterior:
        """
        Update the posterior after observing feedback.

        Positive feedback (reward=1) adds to alpha, negative (reward=0) to beta;
        fractional rewards split between the two.
        """
        if not 0 <= reward <= 1:
            raise InvalidInputError(f"reward must be in [0, 1], got {reward}")

        return self.repository.update(
            user_id,
            candidate_id,
            lambda posterior: BetaPosterior(posterior.alpha + reward, posterior.beta + 1 - reward)
        )
