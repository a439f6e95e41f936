from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Callable, Optional, Tuple

if TYPE_CHECKING:
    from .compiler import Matcher


CacheKey = Tuple[str, bool, Optional[float]]


def _key(pattern_raw: str, case_insensitive: bool, timeout_s: Optional[float]) -> CacheKey:
    return (pattern_raw, case_insensitive, timeout_s if timeout_s and timeout_s > 0 else None)


class MatcherCache:
    """Thread-safe LRU cache of compiled matchers with per-entry expiry.

    Keyed by ``(pattern_raw, case_insensitive, timeout_s)``; a disabled budget
    (``None`` or ``<= 0``) is one key. Owned and passed in by the
    caller; nothing in the matching package keeps one at module level.
    """

    def __init__(
        self,
        max_size: int = 2048,
        ttl_s: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_s = ttl_s
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, Tuple[float, Matcher]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_s > 0 and self._clock() - stored_at >= self.ttl_s

    def get(
        self, pattern_raw: str, case_insensitive: bool = False, timeout_s: Optional[float] = None
    ) -> Optional["Matcher"]:
        key = _key(pattern_raw, case_insensitive, timeout_s)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            stored_at, matcher = entry
            if self._expired(stored_at):
                del self._entries[key]
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return matcher

    def put(
        self,
        pattern_raw: str,
        case_insensitive: bool,
        matcher: "Matcher",
        timeout_s: Optional[float] = None,
    ) -> None:
        key = _key(pattern_raw, case_insensitive, timeout_s)
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = (self._clock(), matcher)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def get_or_compile(
        self,
        pattern_raw: str,
        case_insensitive: bool,
        compile_fn: Callable[[], Optional["Matcher"]],
        timeout_s: Optional[float] = None,
    ) -> Optional["Matcher"]:
        matcher = self.get(pattern_raw, case_insensitive, timeout_s)
        if matcher is not None:
            return matcher
        matcher = compile_fn()
        # unusable patterns are not cached so a later fix is picked up
        if matcher is not None:
            self.put(pattern_raw, case_insensitive, matcher, timeout_s)
        return matcher

    def invalidate(self, pattern_raw: str, case_insensitive: Optional[bool] = None) -> int:
        """Drop cached matchers for ``pattern_raw`` under any time budget.

        Returns how many were removed.
        """
        with self._lock:
            stale = [
                key
                for key in self._entries
                if key[0] == pattern_raw and (case_insensitive is None or key[1] == case_insensitive)
            ]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
