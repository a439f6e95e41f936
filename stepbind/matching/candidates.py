from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional, Sequence

from .constants import FALLBACK_VALUE, MAX_CANDIDATES, PLACEHOLDER_PATTERN, WHITESPACE_PATTERN

if TYPE_CHECKING:
    from ..models import ExampleTable


def normalize_whitespace(text: str) -> str:
    """Trim and collapse every run of whitespace to a single space."""
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def extract_placeholders(text: str) -> List[str]:
    """Names of the ``<placeholder>`` tokens in ``text``, in order of appearance."""
    return [m.group(1) for m in PLACEHOLDER_PATTERN.finditer(text)]


def has_placeholders(text: str) -> bool:
    return PLACEHOLDER_PATTERN.search(text) is not None


def _substitute(text: str, headers: Sequence[str], row: Sequence[str]) -> str:
    columns = {}
    for idx, header in enumerate(headers):
        columns.setdefault(header, idx)

    def replace(m):
        idx = columns.get(m.group(1))
        if idx is None:
            return m.group(0)
        return row[idx] if idx < len(row) else FALLBACK_VALUE

    return PLACEHOLDER_PATTERN.sub(replace, text)


def expand_candidates(
    step_text: str,
    example_tables: Optional[Sequence["ExampleTable"]] = None,
    max_candidates: int = MAX_CANDIDATES,
) -> List[str]:
    """Expand a possibly templated step into the literal sentences to match.

    The first entry is always the fallback: every placeholder replaced by ``X``.
    It is followed by one expansion per example row (tables and rows in the
    order given), de-duplicated after whitespace normalisation, until
    ``max_candidates`` entries exist.
    """
    normalized = normalize_whitespace(step_text)
    candidates = [normalize_whitespace(PLACEHOLDER_PATTERN.sub(FALLBACK_VALUE, normalized))]

    if not example_tables or not has_placeholders(normalized):
        return candidates

    limit = max(1, max_candidates)
    for table in example_tables:
        if len(candidates) >= limit:
            break
        if not table.headers:
            continue
        for row in table.rows:
            if len(candidates) >= limit:
                break
            expanded = normalize_whitespace(_substitute(normalized, table.headers, row))
            if expanded not in candidates:
                candidates.append(expanded)

    return candidates
