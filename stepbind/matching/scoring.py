"""Specificity scoring for step-to-binding matches.

Scoring factors (additive, computed on the whitespace-normalised raw pattern):

- keyword match: +120, or -40 for a cross-keyword fallback match
- literal characters: +1 per character left after stripping metasyntax
- wildcards (``.*``, ``.+``): -15 each
- typed captures (``\\d+``, ``\\w+``, ``[^"]+`` ...): +20 each
- pattern authored as ``^...$``: +30

The result depends on nothing but its arguments.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from .candidates import normalize_whitespace
from .compiler import is_anchored
from .constants import (
    BARE_WILDCARD_PATTERN,
    GROUP_PATTERN,
    GROUPED_WILDCARD_PATTERN,
    NEGATED_CLASS_PATTERN,
    PENALTY_KEYWORD_FALLBACK,
    PENALTY_WILDCARD,
    SCORE_ANCHORED_PATTERN,
    SCORE_KEYWORD_MATCH,
    SCORE_LITERAL_CHAR,
    SCORE_TYPED_CAPTURE,
    SHORTHAND_CLASS_PATTERN,
    TYPED_CAPTURE_PATTERN,
    WILDCARD_PATTERN,
)

if TYPE_CHECKING:
    from ..models import Binding


# Escaped metacharacters are literal text; shorthand classes and anchors are not
_ESCAPED_LITERAL = re.compile(r"\\([^dwsDWSbBAZ0-9])")
_REMAINING_META = re.compile(r"[\[\](){}|?*+^$\\]")


class ScoreWeights(BaseModel):
    """Scoring weights. Changing any of them changes ranking outcomes."""

    model_config = ConfigDict(frozen=True)

    keyword_match_bonus: int = SCORE_KEYWORD_MATCH
    keyword_fallback_penalty: int = PENALTY_KEYWORD_FALLBACK
    literal_char_weight: int = SCORE_LITERAL_CHAR
    wildcard_penalty: int = PENALTY_WILDCARD
    typed_capture_bonus: int = SCORE_TYPED_CAPTURE
    anchored_bonus: int = SCORE_ANCHORED_PATTERN


DEFAULT_WEIGHTS = ScoreWeights()


def count_literal_characters(pattern: str) -> int:
    text = pattern
    if is_anchored(text):
        text = text[1:-1]
    elif text.startswith("^"):
        text = text[1:]
    text = _ESCAPED_LITERAL.sub("_", text)
    for meta in (
        GROUPED_WILDCARD_PATTERN,
        BARE_WILDCARD_PATTERN,
        SHORTHAND_CLASS_PATTERN,
        NEGATED_CLASS_PATTERN,
        GROUP_PATTERN,
        _REMAINING_META,
    ):
        text = meta.sub("", text)
    return len(text)


def count_wildcards(pattern: str) -> int:
    return len(WILDCARD_PATTERN.findall(pattern))


def count_typed_captures(pattern: str) -> int:
    return len(TYPED_CAPTURE_PATTERN.findall(pattern))


def score_binding(
    binding: "Binding",
    keyword_matched: bool,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> int:
    score = weights.keyword_match_bonus if keyword_matched else -weights.keyword_fallback_penalty

    pattern = normalize_whitespace(binding.pattern_raw)
    score += count_literal_characters(pattern) * weights.literal_char_weight
    score -= count_wildcards(pattern) * weights.wildcard_penalty
    score += count_typed_captures(pattern) * weights.typed_capture_bonus

    if is_anchored(binding.pattern_raw):
        score += weights.anchored_bonus

    return score


def compare_scores(a: int, b: int) -> int:
    """Comparator ordering higher scores first."""
    return b - a
