"""Tests for autotrader.market.cache — TTL expiry with a controlled clock."""

from autotrader.market.cache import TTLCache


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_hit_within_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=30, clock=clock)
    cache.set("k", [1, 2])
    clock.now += 29
    assert cache.get("k") == [1, 2]


def test_expired_entry_is_dropped():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=30, clock=clock)
    cache.set("k", "v")
    clock.now += 31
    assert cache.get("k") is None
    assert len(cache) == 0


def test_miss_returns_none():
    assert TTLCache().get("missing") is None


def test_clear():
    cache = TTLCache()
    cache.set("a", 1)
    cache.set("b", 2)
    cache.clear()
    assert len(cache) == 0


def test_independent_instances():
    a, b = TTLCache(), TTLCache()
    a.set("k", 1)
    assert b.get("k") is None


def test_set_sweeps_expired_keys():
    clock = FakeClock()
    cache = TTLCache(ttl_seconds=30, clock=clock)
    cache.set("candles:A", 1)
    cache.set("candles:B", 2)
    clock.now += 20
    cache.set("candles:C", 3)
    clock.now += 15
    cache.set("candles:D", 4)
    assert len(cache) == 2
    assert cache.get("candles:C") == 3
