"""Tests for the TTL cache."""
from auditmatch.storage.ttl_cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_value_returned_before_expiry():
    clock = FakeClock()
    cache = TTLCache("test", ttl_seconds=60, clock=clock)
    cache.set("k", "v")
    clock.advance(59.9)
    assert cache.get("k") == "v"


def test_never_returned_at_or_after_expiry():
    clock = FakeClock()
    cache = TTLCache("test", ttl_seconds=60, clock=clock)
    cache.set("k", "v")
    clock.advance(60)
    assert cache.get("k") is None
    # expired entry removed on access
    assert "k" not in cache._entries


def test_per_entry_ttl_override():
    clock = FakeClock()
    cache = TTLCache("test", ttl_seconds=60, clock=clock)
    cache.set("short", 1, ttl_seconds=5)
    cache.set("long", 2)
    clock.advance(10)
    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_sweep_evicts_only_expired():
    clock = FakeClock()
    cache = TTLCache("test", ttl_seconds=10, clock=clock)
    cache.set("a", 1)
    clock.advance(5)
    cache.set("b", 2)
    clock.advance(6)
    assert cache.sweep() == 1
    assert list(cache.keys()) == ["b"]


def test_contains_does_not_count_hits():
    cache = TTLCache("test", ttl_seconds=10, clock=FakeClock())
    cache.set("a", 1)
    assert cache.contains("a")
    assert "missing" not in cache
    assert cache.hits == 0
    assert cache.misses == 0


def test_stats_and_clear():
    cache = TTLCache("rankings", ttl_seconds=10, clock=FakeClock())
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")
    stats = cache.stats()
    assert stats == {"name": "rankings", "size": 1, "ttl_seconds": 10, "hits": 1, "misses": 1}

    cache.clear()
    assert len(cache) == 0
    assert cache.stats()["hits"] == 0


def test_falsy_values_are_cached():
    cache = TTLCache("test", ttl_seconds=10, clock=FakeClock())
    cache.set("empty", [])
    assert cache.get("empty") == []
