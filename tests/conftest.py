"""Shared fixtures: arena configs in the frontend's camelCase shape and a controllable clock."""

import copy

import pytest

from arenaengine.models import Arena, FeedSample
from arenaengine.service import ArenaService

T0 = 1_700_000_000_000

BASE_ARENA = {
    "id": "arena-btc",
    "name": "BTC above 60k",
    "creator": "alice",
    "matchType": "survivor",
    "predictionScope": "crypto_price",
    "rounds": {"current": 1, "total": 1, "timePerRound": 600},
    "players": {"current": 0, "minimum": 2, "maximum": 100},
    "prizeStructure": {
        "totalPool": "0 USDC",
        "distribution": [{"position": 1, "percentage": 100}],
        "platformFee": 0,
        "referralReward": 0,
        "communityIncentive": 0,
    },
    "entryFee": 0,
    "predictions": {"type": "binary", "options": ["yes", "no"], "threshold": 60000},
    "validationRules": {
        "minimumStake": "5 USDC",
        "maximumStake": "100 USDC",
        "predictionWindow": 600,
        "disputePeriod": 60,
    },
    "oracle": {"provider": "pyth", "feedId": "btc-usd", "updateFrequency": 10, "minimumConfidence": 0.95},
}


def _merge(base, override):
    out = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


class FakeClock:
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> int:
        self.now += int(seconds * 1000)
        return self.now


@pytest.fixture
def arena_config():
    """Factory: arena_config(players={"maximum": 10}) -> camelCase dict."""

    def make(**overrides):
        return _merge(BASE_ARENA, overrides)

    return make


@pytest.fixture
def make_arena(arena_config):
    def make(**overrides) -> Arena:
        return Arena.model_validate(arena_config(**overrides))

    return make


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def payouts():
    """Records every settlement handed to the payout sink."""
    return []


@pytest.fixture
def service(clock, payouts):
    return ArenaService(clock=clock, payout_sink=payouts.append, resolution_backoff_base_sec=5.0)


@pytest.fixture
def active_arena(service, arena_config, clock):
    """Arena with two joined players, started at T0."""
    arena, _ = service.create_arena(arena_config())
    service.join_arena(arena.id, "p1")
    service.join_arena(arena.id, "p2")
    service.start_arena(arena.id)
    return arena.id


def sample(value: float, confidence: float, ts: int, feed_id: str = "btc-usd", provider: str = "pyth") -> FeedSample:
    return FeedSample(provider=provider, feed_id=feed_id, value=value, confidence=confidence, timestamp=ts)
