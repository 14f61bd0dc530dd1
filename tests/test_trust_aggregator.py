"""Tests for cross-service trust aggregation."""

import math

import pytest

from trustmatch.exceptions import InvalidInputError
from trustmatch.profiles import ServiceTrustSignal, TrustVector
from trustmatch.trust import (
    TrustAggregator,
    TrustAggregatorConfig,
    compute_cross_service_trust,
    to_trust_vector,
)


def _signal(score, mean=0.0, std=1.0, reliability=10.0, service="store"):
    return ServiceTrustSignal(service=service, score=score, mean=mean, std=std, reliability=reliability)


class TestComputeCrossServiceTrust:
    """Test the composite trust formula."""

    def test_no_signals_returns_prior(self):
        assert compute_cross_service_trust([]) == 0.5
        assert compute_cross_service_trust([], prior=0.3) == 0.3

    def test_zero_reliability_returns_prior(self):
        signals = [_signal(3.0, reliability=0.0), _signal(-2.0, reliability=0.0)]
        assert compute_cross_service_trust(signals) == 0.5

    def test_known_value(self):
        """z = 1.2 with reliability 40: shrunk = (40 * 1.2 + 10 * 0.5) / 50."""
        signals = [_signal(4.6, mean=4.0, std=0.5, reliability=40)]
        expected = 1 / (1 + math.exp(-1.06))
        assert compute_cross_service_trust(signals) == pytest.approx(expected)

    def test_above_average_beats_below_average(self):
        high = compute_cross_service_trust([_signal(2.0)])
        low = compute_cross_service_trust([_signal(-2.0)])
        assert high > low

    def test_more_evidence_moves_away_from_prior(self):
        weak = compute_cross_service_trust([_signal(3.0, reliability=1)])
        strong = compute_cross_service_trust([_signal(3.0, reliability=1000)])
        assert strong > weak

    def test_zero_std_signal_contributes_nothing(self):
        flat = compute_cross_service_trust([_signal(100.0, mean=1.0, std=0.0, reliability=10)])
        at_mean = compute_cross_service_trust([_signal(0.0, mean=0.0, std=1.0, reliability=10)])
        assert flat == pytest.approx(at_mean)

    def test_result_in_open_interval(self):
        extreme = [_signal(1e9, mean=0.0, std=1e-9, reliability=1e9)]
        result = compute_cross_service_trust(extreme)
        assert 0.0 < result < 1.0

        extreme_low = [_signal(-1e9, mean=0.0, std=1e-9, reliability=1e9)]
        result = compute_cross_service_trust(extreme_low)
        assert 0.0 < result < 1.0

    def test_zero_reliability_signal_is_ignored(self):
        """An overflowing z-score with no evidence behind it changes nothing."""
        cafe = _signal(1.0, mean=0.0, std=1.0, reliability=5, service="cafe")
        noisy = _signal(1e300, mean=0.0, std=1e-10, reliability=0, service="store")
        result = compute_cross_service_trust([noisy, cafe])
        assert not math.isnan(result)
        assert result == pytest.approx(compute_cross_service_trust([cafe]))

    def test_opposite_overflowing_signals_stay_finite(self):
        """Equal and opposite saturated z-scores cancel out."""
        signals = [_signal(1e300, mean=0.0, std=1e-10, reliability=1, service="store"),
                   _signal(-1e300, mean=0.0, std=1e-10, reliability=1, service="cafe")]
        result = compute_cross_service_trust(signals)
        assert 0.0 < result < 1.0
        expected = 1 / (1 + math.exp(-0.5 * 10 / 12))
        assert result == pytest.approx(expected)

    def test_huge_reliability_stays_finite(self):
        signals = [_signal(2.0, reliability=1e308, service="store"),
                   _signal(2.0, reliability=1e308, service="cafe")]
        result = compute_cross_service_trust(signals)
        assert 0.5 < result < 1.0

    def test_reliability_weights_services(self):
        """The better-evidenced service dominates."""
        trusted_high = [_signal(2.0, reliability=100, service="store"),
                        _signal(-2.0, reliability=1, service="cafe")]
        trusted_low = [_signal(2.0, reliability=1, service="store"),
                       _signal(-2.0, reliability=100, service="cafe")]
        assert compute_cross_service_trust(trusted_high) > compute_cross_service_trust(trusted_low)

    def test_accepts_dicts(self, trust_signals):
        as_dicts = [s.to_dict() for s in trust_signals]
        assert compute_cross_service_trust(as_dicts) == pytest.approx(
            compute_cross_service_trust(trust_signals)
        )

    def test_negative_shrinkage_raises(self, trust_signals):
        with pytest.raises(InvalidInputError):
            compute_cross_service_trust(trust_signals, shrinkage_strength=-1)

    def test_negative_reliability_raises(self):
        with pytest.raises(InvalidInputError):
            _signal(1.0, reliability=-1)


class TestTrustAggregator:
    """Test the configured aggregator wrapper."""

    def test_uses_configured_options(self, trust_signals):
        aggregator = TrustAggregator(TrustAggregatorConfig(shrinkage_strength=0.0, prior=0.5))
        assert aggregator.aggregate(trust_signals) == pytest.approx(
            compute_cross_service_trust(trust_signals, shrinkage_strength=0.0)
        )

    def test_overrides(self, trust_signals):
        aggregator = TrustAggregator()
        assert aggregator.aggregate([], prior=0.2) == 0.2

    def test_from_config(self):
        config = TrustAggregatorConfig.from_config({"trust": {"shrinkage_strength": 3}})
        assert config.shrinkage_strength == 3
        assert config.prior == 0.5

    def test_trust_vector(self, trust_signals):
        vector = TrustAggregator().trust_vector(trust_signals, delivery_compliance=0.9)
        assert vector.delivery_compliance == 0.9
        assert vector.composite_trust == pytest.approx(compute_cross_service_trust(trust_signals))


class TestTrustVector:
    """Test TrustVector construction helpers."""

    def test_to_trust_vector(self):
        vector = to_trust_vector(0.8, {"offline_reputation": 0.7})
        assert vector.composite_trust == 0.8
        assert vector.offline_reputation == 0.7
        assert vector.doorbell_response_rate == 0.0

    def test_with_components_recomputes_composite(self, trust_signals):
        vector = TrustVector().with_components(trust_signals, doorbell_response_rate=0.4)
        assert vector.doorbell_response_rate == 0.4
        assert vector.composite_trust == pytest.approx(compute_cross_service_trust(trust_signals))

    def test_with_components_rejects_unknown(self, trust_signals):
        with pytest.raises(InvalidInputError):
            TrustVector().with_components(trust_signals, charisma=1.0)
