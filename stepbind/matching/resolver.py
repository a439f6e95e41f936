from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import cmp_to_key
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from ..models import Binding, Keyword, MatchCandidate, MatchStatus, ResolveDebugInfo, ResolveResult, Step
from .scoring import DEFAULT_WEIGHTS, ScoreWeights, compare_scores, score_binding


logger = logging.getLogger(__name__)


class BindingCorpus(Protocol):
    """Read-only view of the step-definition corpus a resolver works against."""

    def get_all_bindings(self) -> Sequence[Binding]: ...

    def get_bindings_for_keyword(self, keyword: Keyword) -> Sequence[Binding]: ...


class CorpusSnapshot:
    """Immutable :class:`BindingCorpus` built from a list of bindings.

    Bindings whose pattern could not be compiled at all are left out and kept
    in ``excluded`` so callers can surface them.
    """

    def __init__(self, bindings: Iterable[Binding]):
        usable: List[Binding] = []
        excluded: List[Binding] = []
        for binding in bindings:
            if binding.matcher is None:
                logger.warning(
                    "Excluding unusable binding %s (%r)", binding.signature, binding.pattern_raw
                )
                excluded.append(binding)
                continue
            usable.append(binding)

        self._all: Tuple[Binding, ...] = tuple(usable)
        self._by_keyword: Dict[Keyword, Tuple[Binding, ...]] = {
            kw: tuple(b for b in usable if b.keyword == kw) for kw in Keyword
        }
        self.excluded: Tuple[Binding, ...] = tuple(excluded)

    def get_all_bindings(self) -> Sequence[Binding]:
        return self._all

    def get_bindings_for_keyword(self, keyword: Keyword) -> Sequence[Binding]:
        return self._by_keyword.get(keyword, ())

    def __len__(self) -> int:
        return len(self._all)


def _try_match(
    binding: Binding,
    candidate_texts: Sequence[str],
    keyword_matched: bool,
    weights: ScoreWeights,
) -> Optional[MatchCandidate]:
    matcher = binding.matcher
    if matcher is None:
        return None
    for text in candidate_texts:
        arguments = matcher.arguments(text)
        if arguments is not None:
            return MatchCandidate(
                binding=binding,
                score=score_binding(binding, keyword_matched, weights),
                keyword_matched=keyword_matched,
                matched_text=text,
                arguments=list(arguments),
            )
    return None


def _derive_status(candidates: Sequence[MatchCandidate]) -> Tuple[MatchStatus, Optional[MatchCandidate]]:
    if not candidates:
        return MatchStatus.UNBOUND, None
    if len(candidates) == 1:
        return MatchStatus.BOUND, candidates[0]
    # Only an exact tie on the top score is ambiguous
    if candidates[0].score == candidates[1].score:
        return MatchStatus.AMBIGUOUS, candidates[0]
    return MatchStatus.BOUND, candidates[0]


class Resolver:
    """Resolves steps against a binding corpus.

    Stateless between calls: each :meth:`resolve` reads the corpus, matches,
    scores and ranks, and returns a fresh :class:`ResolveResult`.
    """

    def __init__(self, corpus: BindingCorpus, weights: ScoreWeights = DEFAULT_WEIGHTS):
        self.corpus = corpus
        self.weights = weights

    def resolve(self, step: Step, debug: bool = False) -> ResolveResult:
        candidates: List[MatchCandidate] = []

        for binding in self.corpus.get_bindings_for_keyword(step.keyword):
            hit = _try_match(binding, step.candidate_texts, True, self.weights)
            if hit is not None:
                candidates.append(hit)

        # Cross-keyword fallback, e.g. an "And" step bound under another keyword
        if not candidates:
            for binding in self.corpus.get_all_bindings():
                hit = _try_match(binding, step.candidate_texts, False, self.weights)
                if hit is not None:
                    candidates.append(hit)

        candidates.sort(key=cmp_to_key(lambda a, b: compare_scores(a.score, b.score)))
        status, best = _derive_status(candidates)
        logger.debug("Resolved %s %r: %s (%d candidates)", step.keyword.value, step.text, status.value, len(candidates))

        debug_info = None
        if debug:
            debug_info = ResolveDebugInfo(
                step_text=step.text,
                candidate_text_count=len(step.candidate_texts),
                sample_candidates=list(step.candidate_texts[:3]),
                bindings_checked=len(self.corpus.get_all_bindings()),
            )

        return ResolveResult(step=step, status=status, candidates=candidates, best=best, debug=debug_info)

    def resolve_all(
        self,
        steps: Sequence[Step],
        debug: bool = False,
        concurrency: int = 1,
    ) -> List[ResolveResult]:
        """Resolve many steps; results keep the order of ``steps``."""
        if concurrency <= 1 or len(steps) <= 1:
            return [self.resolve(step, debug=debug) for step in steps]

        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            return list(executor.map(lambda s: self.resolve(s, debug=debug), steps))


def resolve_step(
    step: Step,
    corpus: BindingCorpus,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
    debug: bool = False,
) -> ResolveResult:
    return Resolver(corpus, weights).resolve(step, debug=debug)
