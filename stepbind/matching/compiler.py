from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Tuple

import regex

if TYPE_CHECKING:
    from .cache import MatcherCache


logger = logging.getLogger(__name__)

DEFAULT_MATCH_TIMEOUT_S = 0.25

# RecursionError: deeply nested groups exhaust the parser stack
_COMPILE_ERRORS = (regex.error, OverflowError, ValueError, RecursionError)


class Matcher:
    """A compiled step-definition pattern that only accepts whole sentences.

    Matching goes through ``regex`` so every attempt can carry a time budget;
    a pattern that backtracks past the budget is reported as a non-match
    instead of stalling the caller.
    """

    __slots__ = ("pattern_raw", "literal", "timeout_s", "_compiled")

    def __init__(
        self,
        pattern_raw: str,
        compiled: "regex.Pattern",
        literal: bool = False,
        timeout_s: Optional[float] = DEFAULT_MATCH_TIMEOUT_S,
    ):
        self.pattern_raw = pattern_raw
        self.literal = literal
        self.timeout_s = timeout_s if timeout_s and timeout_s > 0 else None
        self._compiled = compiled

    @property
    def source(self) -> str:
        return self._compiled.pattern

    @property
    def case_insensitive(self) -> bool:
        return bool(self._compiled.flags & regex.IGNORECASE)

    def match(self, text: str) -> Optional["regex.Match"]:
        try:
            return self._compiled.fullmatch(text, timeout=self.timeout_s)
        except TimeoutError:
            logger.warning(
                "Matching %r against %r exceeded %.3fs; treating as no match",
                self.pattern_raw,
                text,
                self.timeout_s,
            )
            return None

    def matches(self, text: str) -> bool:
        return self.match(text) is not None

    def arguments(self, text: str) -> Optional[Tuple[Optional[str], ...]]:
        """Captured parameter values for ``text``, or None when it does not match."""
        m = self.match(text)
        if m is None:
            return None
        return m.groups()

    def __repr__(self) -> str:
        kind = "literal" if self.literal else "regex"
        return f"Matcher({self.source!r}, {kind})"


def escape_literal_anchors(pattern: str) -> str:
    """Escape ``$`` and ``^`` that can only be meant as literal characters.

    A ``$`` anywhere but the last position and a ``^`` anywhere but the first
    position (and not opening a negated class ``[^``) is escaped, so that
    "Cost is $5" matches the dollar sign instead of an end anchor.
    """
    out = []
    last = len(pattern) - 1
    opens_class = False
    i = 0
    while i <= last:
        ch = pattern[i]
        if ch == "\\":
            out.append(pattern[i : i + 2])
            opens_class = False
            i += 2
            continue
        if ch == "$" and i != last:
            out.append("\\$")
        elif ch == "^" and i != 0 and not opens_class:
            out.append("\\^")
        else:
            out.append(ch)
        opens_class = ch == "["
        i += 1
    return "".join(out)


def _anchor(pattern: str) -> str:
    if not pattern.startswith("^"):
        pattern = "^" + pattern
    if not pattern.endswith("$") or _ends_with_escape(pattern):
        pattern = pattern + "$"
    return pattern


def _ends_with_escape(pattern: str) -> bool:
    # True when the final character is consumed by a backslash escape
    i = 0
    last = len(pattern) - 1
    while i <= last:
        if pattern[i] == "\\":
            if i + 1 == last:
                return True
            i += 2
            continue
        i += 1
    return False


def _flags(case_insensitive: bool) -> int:
    flags = regex.UNICODE
    if case_insensitive:
        flags |= regex.IGNORECASE | regex.FULLCASE
    return flags


def _compile(pattern_raw: str, case_insensitive: bool, timeout_s: Optional[float]) -> Optional[Matcher]:
    flags = _flags(case_insensitive)
    try:
        compiled = regex.compile(_anchor(escape_literal_anchors(pattern_raw)), flags)
        return Matcher(pattern_raw, compiled, literal=False, timeout_s=timeout_s)
    except _COMPILE_ERRORS as exc:
        logger.warning("Invalid step pattern %r (%s); falling back to exact text match", pattern_raw, exc)

    try:
        compiled = regex.compile("^" + regex.escape(pattern_raw) + "$", flags)
        return Matcher(pattern_raw, compiled, literal=True, timeout_s=timeout_s)
    except _COMPILE_ERRORS as exc:
        logger.error("Step pattern %r is unusable: %s", pattern_raw, exc)
        return None


def compile_pattern(
    pattern_raw: str,
    case_insensitive: bool = False,
    *,
    cache: Optional["MatcherCache"] = None,
    timeout_s: Optional[float] = DEFAULT_MATCH_TIMEOUT_S,
) -> Optional[Matcher]:
    """Compile a raw step pattern into a full-string :class:`Matcher`.

    Never raises. A pattern that is not valid regex syntax is compiled as an
    exact literal match of its raw text; None is returned only if that fails too.
    """
    if cache is None:
        return _compile(pattern_raw, case_insensitive, timeout_s)
    return cache.get_or_compile(
        pattern_raw,
        case_insensitive,
        lambda: _compile(pattern_raw, case_insensitive, timeout_s),
        timeout_s,
    )


def is_anchored(pattern: str) -> bool:
    """True if ``pattern`` starts with ``^`` and ends with ``$`` as authored."""
    return len(pattern) >= 2 and pattern.startswith("^") and pattern.endswith("$")


def count_capture_groups(pattern: str) -> int:
    """Count capturing groups in a raw pattern.

    An unescaped ``(`` counts unless it is immediately followed by ``?``
    (non-capturing groups and lookarounds). Escapes are skipped two characters
    at a time so ``\\(`` is never counted.
    """
    count = 0
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "(" and not pattern.startswith("?", i + 1):
            count += 1
        i += 1
    return count
