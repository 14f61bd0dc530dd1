"""Tests for cold-start profile bootstrapping."""

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from trustmatch.cold_start import (
    BetaPosterior,
    CategoryProfile,
    InMemoryBanditStateRepository,
    InMemoryInteractionCountRepository,
    ServiceProfile,
    ThompsonSampler,
    ThoughtRecord,
    TransferMapping,
    initialize_from_content,
    learn_transfer_mapping,
    transfer_from_active_service,
)
from trustmatch.exceptions import InvalidInputError


class TestContentInitialization:
    """Test initialization from journal categories."""

    def test_weighted_mean_of_categories(self):
        thoughts = [ThoughtRecord("t1", "tech"), ThoughtRecord("t2", "tech"), ThoughtRecord("t3", "design")]
        profiles = [CategoryProfile("tech", (1.0, 0.0)), CategoryProfile("design", (0.0, 1.0))]
        result = initialize_from_content(thoughts, profiles)
        assert list(result) == pytest.approx([2 / 3, 1 / 3])

    def test_category_weight(self):
        thoughts = [ThoughtRecord("t1", "tech"), ThoughtRecord("t2", "design")]
        profiles = [CategoryProfile("tech", (1.0, 0.0), weight=3.0), CategoryProfile("design", (0.0, 1.0))]
        assert list(initialize_from_content(thoughts, profiles)) == pytest.approx([0.75, 0.25])

    def test_unknown_categories_ignored(self):
        thoughts = [ThoughtRecord("t1", "cooking")]
        profiles = [CategoryProfile("tech", (1.0, 0.0))]
        assert list(initialize_from_content(thoughts, profiles)) == [0.0, 0.0]

    def test_empty_input(self):
        assert initialize_from_content([], []).size == 0

    def test_mismatched_dimensions_raise(self):
        profiles = [CategoryProfile("tech", (1.0, 0.0)), CategoryProfile("design", (1.0,))]
        with pytest.raises(InvalidInputError):
            initialize_from_content([ThoughtRecord("t1", "tech")], profiles)


class TestTransferMapping:
    """Test cross-domain transfer."""

    @pytest.fixture
    def known_map(self):
        return np.array([[2.0, 0.0, 1.0], [0.5, -1.0, 0.0]])

    @pytest.fixture
    def overlap_users(self, known_map):
        rng = np.random.default_rng(7)
        users = []
        for i, x in enumerate(rng.normal(size=(40, 3))):
            y = known_map @ x
            users.append((
                ServiceProfile(f"u{i}", tuple(x), "brain"),
                ServiceProfile(f"u{i}", tuple(y), "place"),
            ))
        return users

    def test_recovers_known_linear_map(self, overlap_users, known_map):
        mapping = learn_transfer_mapping(overlap_users, ridge_lambda=1e-8)
        assert mapping.source_service == "brain"
        assert mapping.target_service == "place"
        assert mapping.weights.shape == (2, 3)
        assert np.allclose(mapping.weights, known_map, atol=1e-3)

    def test_transfer(self, overlap_users, known_map):
        mapping = learn_transfer_mapping(overlap_users, ridge_lambda=1e-8)
        transferred = transfer_from_active_service(ServiceProfile("new", (1.0, 1.0, 1.0), "brain"), mapping)
        assert transferred.service == "place"
        assert list(transferred.embedding) == pytest.approx([3.0, -0.5], abs=1e-3)

    def test_regularization_shrinks_weights(self, overlap_users):
        loose = learn_transfer_mapping(overlap_users, ridge_lambda=1e-8)
        tight = learn_transfer_mapping(overlap_users, ridge_lambda=10.0)
        assert np.linalg.norm(tight.weights) < np.linalg.norm(loose.weights)

    def test_dimension_mismatch_raises(self, overlap_users):
        mapping = learn_transfer_mapping(overlap_users)
        with pytest.raises(InvalidInputError):
            mapping.transfer(ServiceProfile("x", (1.0, 2.0), "brain"))

    def test_no_users_raises(self):
        with pytest.raises(InvalidInputError):
            learn_transfer_mapping([])

    def test_ragged_embeddings_raise(self):
        users = [
            (ServiceProfile("a", (1.0, 0.0), "brain"), ServiceProfile("a", (1.0,), "place")),
            (ServiceProfile("b", (1.0,), "brain"), ServiceProfile("b", (1.0,), "place")),
        ]
        with pytest.raises(InvalidInputError):
            learn_transfer_mapping(users)

    def test_save_and_load(self, overlap_users, tmp_path):
        mapping = learn_transfer_mapping(overlap_users)
        path = tmp_path / "mapping.joblib"
        mapping.save(str(path))
        loaded = TransferMapping.load(str(path))
        assert loaded.source_service == mapping.source_service
        assert np.array_equal(loaded.weights, mapping.weights)


class TestThompsonSampler:
    """Test Thompson sampling over Beta posteriors."""

    def test_default_posterior(self):
        repo = InMemoryBanditStateRepository()
        assert repo.get("u", "c").to_dict() == {"alpha": 1.0, "beta": 1.0}

    def test_update(self):
        repo = InMemoryBanditStateRepository()
        sampler = ThompsonSampler(repo, random_seed=0)
        sampler.update("u", "c", 1.0)
        sampler.update("u", "c", 0.0)
        posterior = sampler.update("u", "c", 0.25)
        assert posterior.alpha == pytest.approx(2.25)
        assert posterior.beta == pytest.approx(2.75)
        assert repo.get("u", "c").alpha == pytest.approx(2.25)

    def test_invalid_reward_raises(self):
        sampler = ThompsonSampler(InMemoryBanditStateRepository())
        with pytest.raises(InvalidInputError):
            sampler.update("u", "c", 1.5)

    def test_seeded_runs_are_reproducible(self):
        first = ThompsonSampler(InMemoryBanditStateRepository(), random_seed=42).explore("u", ["a", "b", "c"])
        second = ThompsonSampler(InMemoryBanditStateRepository(), random_seed=42).explore("u", ["a", "b", "c"])
        assert first.to_dict() == second.to_dict()

    def test_favours_rewarded_candidate(self):
        repo = InMemoryBanditStateRepository()
        repo.put("u", "good", BetaPosterior(alpha=500.0, beta=1.0))
        repo.put("u", "bad", BetaPosterior(alpha=1.0, beta=500.0))
        sampler = ThompsonSampler(repo, random_seed=3)
        picks = [sampler.explore("u", ["bad", "good"]).selected_id for _ in range(20)]
        assert picks == ["good"] * 20

    def test_no_candidates_raises(self):
        with pytest.raises(InvalidInputError):
            ThompsonSampler(InMemoryBanditStateRepository()).explore("u", [])

    def test_repository_isolated_per_user(self):
        repo = InMemoryBanditStateRepository()
        ThompsonSampler(repo).update("u1", "c", 1.0)
        assert repo.get("u2", "c").alpha == 1.0

    def test_concurrent_updates_are_not_lost(self):
        repo = InMemoryBanditStateRepository()
        sampler = ThompsonSampler(repo, random_seed=0)
        n_updates = 400
        rewards = [i % 2 for i in range(n_updates)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda r: sampler.update("u", "c", float(r)), rewards))
        posterior = repo.get("u", "c")
        assert posterior.alpha + posterior.beta == pytest.approx(2 + n_updates)
        assert posterior.alpha == pytest.approx(1 + n_updates / 2)

    def test_concurrent_explore_and_update(self):
        sampler = ThompsonSampler(InMemoryBanditStateRepository(), random_seed=1)

        def step(i):
            pick = sampler.explore("u", ["a", "b", "c"]).selected_id
            sampler.update("u", pick, float(i % 2))
            return pick

        with ThreadPoolExecutor(max_workers=8) as pool:
            picks = list(pool.map(step, range(200)))
        total = sum(
            p.alpha + p.beta - 2 for p in (sampler.repository.get("u", cid) for cid in "abc")
        )
        assert set(picks) <= {"a", "b", "c"}
        assert total == pytest.approx(200)


class TestInteractionCounts:
    """Test the interaction count repository."""

    def test_increment(self):
        repo = InMemoryInteractionCountRepository({"u": 4})
        assert repo.increment("u") == 5
        assert repo.increment("new") == 1
        assert repo.get("missing") == 0

    def test_negative_count_raises(self):
        with pytest.raises(InvalidInputError):
            InMemoryInteractionCountRepository().set("u", -1)
