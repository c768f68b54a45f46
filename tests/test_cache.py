"""Tests for the determination cache."""

import itertools

import pytest

from statebot.cache import KEY_SEPARATOR, DeterminationCache, make_key


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> DeterminationCache:
    return DeterminationCache(expiry=300, clock=clock)


class TestMakeKey:
    def test_order_does_not_matter(self):
        facts = ["door open", "light on", "alarm armed"]
        keys = {make_key(p) for p in itertools.permutations(facts)}
        assert len(keys) == 1

    def test_duplicates_are_kept(self):
        assert make_key(["a", "b", "a"]) == make_key(["a", "a", "b"])
        assert make_key(["a", "b", "a"]) != make_key(["a", "b"])

    def test_joined_with_separator(self):
        assert make_key(["b", "a"]) == f"a{KEY_SEPARATOR}b"

    def test_separator_collision_is_possible(self):
        assert make_key(["a|b"]) == make_key(["a", "b"])


class TestDeterminationCache:
    def test_miss(self, cache: DeterminationCache):
        assert cache.get("nothing") is None

    def test_hit(self, cache: DeterminationCache, clock: FakeClock):
        cache.set("k", "A", 0.9)
        clock.now += 299

        entry = cache.get("k")
        assert entry is not None
        assert entry.state == "A"
        assert entry.confidence == 0.9

    def test_expired_entry_is_miss_but_kept(self, cache: DeterminationCache, clock: FakeClock):
        cache.set("k", "A", 0.9)
        clock.now += 300

        assert cache.get("k") is None
        assert "k" in cache
        assert len(cache) == 1

    def test_overwrite_refreshes_timestamp(self, cache: DeterminationCache, clock: FakeClock):
        cache.set("k", "A", 0.9)
        clock.now += 250
        cache.set("k", "B", 0.6)
        clock.now += 100

        entry = cache.get("k")
        assert entry is not None
        assert entry.state == "B"
        assert len(cache) == 1

    def test_unbounded_by_default(self, cache: DeterminationCache):
        for i in range(100):
            cache.set(f"k{i}", "A", 0.5)
        assert len(cache) == 100

    def test_max_entries_evicts_oldest_written(self, clock: FakeClock):
        cache = DeterminationCache(expiry=300, max_entries=2, clock=clock)
        cache.set("a", "A", 0.5)
        cache.set("b", "B", 0.5)
        cache.set("a", "A", 0.7)  # rewrite makes "b" the oldest
        cache.set("c", "A", 0.5)

        assert "b" not in cache
        assert "a" in cache
        assert "c" in cache

    def test_clear(self, cache: DeterminationCache):
        cache.set("a", "A", 0.5)
        cache.clear()
        assert len(cache) == 0
