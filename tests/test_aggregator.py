"""Oracle aggregator: window filtering, confidence weighting, staleness."""

import pytest
from pydantic import ValidationError

from arenaengine.errors import ArenaNotFound, InsufficientConfidence, StaleData
from arenaengine.models import MarketOracle
from arenaengine.oracle.aggregator import OracleAggregator, resolve_window, window_length_ms

from conftest import T0, sample

ORACLE = MarketOracle(provider="pyth", feed_id="btc-usd", update_frequency=10, minimum_confidence=0.95)


def test_window_length_is_max_of_update_cadence_and_dispute_period():
    assert window_length_ms(ORACLE, dispute_period_sec=5) == 30_000
    assert window_length_ms(ORACLE, dispute_period_sec=120) == 120_000


def test_only_confident_samples_count():
    """0.9 is below the 0.95 minimum; only the 0.97 sample resolves."""
    samples = [sample(61000.0, 0.9, T0), sample(62000.0, 0.97, T0 + 1000)]
    r = resolve_window("a1", ORACLE, samples, 30_000, now=T0 + 2000)
    assert r.value == 62000.0
    assert r.confidence == 0.97
    assert r.sample_count == 1
    assert r.timestamp == T0 + 1000


def test_confidence_weighted_mean_never_amplifies_confidence():
    samples = [sample(100.0, 0.96, T0), sample(200.0, 0.99, T0 + 1000)]
    r = resolve_window("a1", ORACLE, samples, 30_000, now=T0 + 1000)
    expected = (100.0 * 0.96 + 200.0 * 0.99) / (0.96 + 0.99)
    assert abs(r.value - expected) < 1e-9
    assert r.confidence == 0.99


def test_resolve_is_pure():
    samples = [sample(100.0, 0.96, T0), sample(101.0, 0.98, T0 + 5000)]
    r1 = resolve_window("a1", ORACLE, samples, 30_000, now=T0 + 6000)
    r2 = resolve_window("a1", ORACLE, samples, 30_000, now=T0 + 6000)
    assert r1 == r2
    assert r1.digest() == r2.digest()


def test_no_confident_sample_raises_insufficient_confidence():
    with pytest.raises(InsufficientConfidence):
        resolve_window("a1", ORACLE, [sample(1.0, 0.5, T0)], 30_000, now=T0)
    with pytest.raises(InsufficientConfidence):
        resolve_window("a1", ORACLE, [], 30_000, now=T0)


def test_stale_samples_raise_stale_data():
    """Latest sample older than 2 x updateFrequency (20s) but still inside the window."""
    samples = [sample(100.0, 0.99, T0)]
    with pytest.raises(StaleData):
        resolve_window("a1", ORACLE, samples, 60_000, now=T0 + 25_000)


def test_samples_outside_window_are_dropped():
    samples = [sample(1.0, 0.99, T0), sample(2.0, 0.99, T0 + 40_000)]
    r = resolve_window("a1", ORACLE, samples, 30_000, now=T0 + 41_000)
    assert r.value == 2.0
    assert r.sample_count == 1


def test_aggregator_rejects_old_and_foreign_samples():
    agg = OracleAggregator()
    agg.track("a1", ORACLE, dispute_period_sec=60)
    assert agg.add_sample("a1", sample(1.0, 0.99, T0 + 1000))
    assert not agg.add_sample("a1", sample(2.0, 0.99, T0 + 1000))  # not newer
    assert not agg.add_sample("a1", sample(2.0, 0.99, T0 + 2000, feed_id="eth-usd"))
    assert len(agg.window("a1")) == 1


def test_aggregator_trims_to_window():
    agg = OracleAggregator()
    agg.track("a1", ORACLE, dispute_period_sec=0)  # 30s window
    for i in range(10):
        agg.add_sample("a1", sample(float(i), 0.99, T0 + i * 10_000))
    window = agg.window("a1")
    assert [s.value for s in window] == [6.0, 7.0, 8.0, 9.0]


def test_aggregator_resolve_matches_pure_function():
    agg = OracleAggregator()
    agg.track("a1", ORACLE, dispute_period_sec=60)
    agg.add_sample("a1", sample(61000.0, 0.9, T0))
    agg.add_sample("a1", sample(62000.0, 0.97, T0 + 1000))
    r = agg.resolve("a1", now=T0 + 2000)
    assert r.value == 62000.0
    assert r.confidence == 0.97
    assert agg.resolve("a1", now=T0 + 2000) == r


def test_untracked_arena_raises():
    agg = OracleAggregator()
    with pytest.raises(ArenaNotFound):
        agg.resolve("missing", now=T0)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_samples_are_rejected(value):
    with pytest.raises(ValidationError):
        sample(value, 0.99, T0)


def test_weighted_mean_of_huge_values_stays_finite():
    samples = [sample(1.7e308, 0.99, T0), sample(1.7e308, 0.99, T0 + 1000)]
    r = resolve_window("a1", ORACLE, samples, 30_000, now=T0 + 1000)
    assert r.value == pytest.approx(1.7e308)
