"""Tests for the compiled matcher cache."""

from unittest.mock import Mock

import pytest

from stepbind.matching.cache import MatcherCache


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMatcherCache:
    """Test MatcherCache."""

    def test_miss_then_hit(self) -> None:
        cache = MatcherCache()
        matcher = Mock()

        assert cache.get("I press add") is None
        cache.put("I press add", False, matcher)

        assert cache.get("I press add") is matcher
        assert cache.hits == 1
        assert cache.misses == 1

    def test_case_flag_is_part_of_key(self) -> None:
        cache = MatcherCache()
        cache.put("I press add", False, Mock())

        assert cache.get("I press add", True) is None

    def test_time_budget_is_part_of_key(self) -> None:
        cache = MatcherCache()
        bounded, unbounded = Mock(), Mock()
        cache.put("I press add", False, bounded, timeout_s=0.25)
        cache.put("I press add", False, unbounded, timeout_s=None)

        assert cache.get("I press add", False, 0.25) is bounded
        assert cache.get("I press add", False, 1.0) is None
        assert cache.get("I press add", False, 0) is unbounded
        assert cache.get("I press add") is unbounded

    def test_invalidate_covers_every_budget(self) -> None:
        cache = MatcherCache()
        cache.put("a", False, Mock(), timeout_s=0.25)
        cache.put("a", False, Mock(), timeout_s=1.0)
        cache.put("a", True, Mock(), timeout_s=1.0)

        assert cache.invalidate("a", False) == 2
        assert len(cache) == 1

    def test_least_recently_used_is_evicted(self) -> None:
        cache = MatcherCache(max_size=2)
        a, b, c = Mock(), Mock(), Mock()
        cache.put("a", False, a)
        cache.put("b", False, b)
        cache.get("a")

        cache.put("c", False, c)

        assert len(cache) == 2
        assert cache.get("b") is None
        assert cache.get("a") is a
        assert cache.get("c") is c

    def test_entries_expire(self) -> None:
        clock = FakeClock()
        cache = MatcherCache(ttl_s=600, clock=clock)
        cache.put("a", False, Mock())

        clock.now = 599
        assert cache.get("a") is not None

        clock.now = 600
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_zero_ttl_never_expires(self) -> None:
        clock = FakeClock()
        cache = MatcherCache(ttl_s=0, clock=clock)
        cache.put("a", False, Mock())

        clock.now = 1_000_000

        assert cache.get("a") is not None

    def test_get_or_compile_compiles_once(self) -> None:
        cache = MatcherCache()
        compile_fn = Mock(return_value=Mock())

        first = cache.get_or_compile("a", False, compile_fn)
        second = cache.get_or_compile("a", False, compile_fn)

        assert first is second
        compile_fn.assert_called_once_with()

    def test_unusable_result_is_not_cached(self) -> None:
        cache = MatcherCache()
        compile_fn = Mock(return_value=None)

        assert cache.get_or_compile("a", False, compile_fn) is None
        assert cache.get_or_compile("a", False, compile_fn) is None
        assert compile_fn.call_count == 2
        assert len(cache) == 0

    def test_invalidate(self) -> None:
        cache = MatcherCache()
        cache.put("a", False, Mock())
        cache.put("a", True, Mock())
        cache.put("b", False, Mock())

        assert cache.invalidate("a", True) == 1
        assert cache.invalidate("a") == 1
        assert cache.invalidate("missing") == 0
        assert len(cache) == 1

    def test_clear_resets_counters(self) -> None:
        cache = MatcherCache()
        cache.put("a", False, Mock())
        cache.get("a")
        cache.get("b")

        cache.clear()

        assert len(cache) == 0
        assert (cache.hits, cache.misses) == (0, 0)

    def test_rejects_empty_capacity(self) -> None:
        with pytest.raises(ValueError):
            MatcherCache(max_size=0)
