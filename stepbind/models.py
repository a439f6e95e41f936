from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .matching.candidates import expand_candidates
from .matching.compiler import DEFAULT_MATCH_TIMEOUT_S, Matcher, compile_pattern, count_capture_groups, is_anchored
from .matching.constants import MAX_CANDIDATES

if TYPE_CHECKING:
    from .matching.cache import MatcherCache


class Keyword(str, Enum):
    """Canonical step role: precondition (Given), action (When), outcome (Then)."""

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"

    @classmethod
    def parse(cls, value: str) -> "Keyword":
        lowered = value.strip().lower()
        for kw in cls:
            if kw.value.lower() == lowered:
                return kw
        raise ValueError(f"Not a canonical step keyword: {value!r}")


class MatchStatus(str, Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    AMBIGUOUS = "ambiguous"


class SourceLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: str
    line: int = 1  # 1-based

    def __str__(self) -> str:
        return f"{self.file_path}:{self.line}"


class StepPattern(BaseModel):
    """A step-definition pattern exactly as authored, plus its compiled matcher."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    raw: str
    keyword: Keyword
    case_insensitive: bool = False
    matcher: Optional[Matcher] = Field(default=None, exclude=True, repr=False)

    @property
    def anchored(self) -> bool:
        return is_anchored(self.raw)

    @property
    def capture_groups(self) -> int:
        return count_capture_groups(self.raw)

    @property
    def usable(self) -> bool:
        return self.matcher is not None


class Binding(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    pattern: StepPattern
    owner: str  # class or module declaring the step definition
    member: str  # method or function name
    location: Optional[SourceLocation] = None

    @property
    def keyword(self) -> Keyword:
        return self.pattern.keyword

    @property
    def pattern_raw(self) -> str:
        return self.pattern.raw

    @property
    def matcher(self) -> Optional[Matcher]:
        return self.pattern.matcher

    @property
    def signature(self) -> str:
        return f"{self.owner}.{self.member}"

    @classmethod
    def create(
        cls,
        pattern_raw: str,
        keyword: Keyword,
        owner: str,
        member: str,
        location: Optional[SourceLocation] = None,
        case_insensitive: bool = False,
        cache: Optional["MatcherCache"] = None,
        timeout_s: Optional[float] = DEFAULT_MATCH_TIMEOUT_S,
    ) -> "Binding":
        matcher = compile_pattern(pattern_raw, case_insensitive, cache=cache, timeout_s=timeout_s)
        pattern = StepPattern(
            raw=pattern_raw,
            keyword=keyword,
            case_insensitive=case_insensitive,
            matcher=matcher,
        )
        return cls(pattern=pattern, owner=owner, member=member, location=location)


class ExampleTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    headers: List[str] = Field(default_factory=list)
    rows: List[List[str]] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class Step(BaseModel):
    model_config = ConfigDict(frozen=True)

    keyword: Keyword
    text: str
    candidate_texts: List[str] = Field(min_length=1)
    tags: List[str] = Field(default_factory=list)
    location: Optional[SourceLocation] = None
    scenario: Optional[str] = None

    @classmethod
    def from_text(
        cls,
        keyword: Keyword,
        text: str,
        example_tables: Optional[Sequence[ExampleTable]] = None,
        max_candidates: int = MAX_CANDIDATES,
        **extra,
    ) -> "Step":
        candidates = expand_candidates(text, example_tables, max_candidates=max_candidates)
        return cls(keyword=keyword, text=text, candidate_texts=candidates, **extra)


class MatchCandidate(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    binding: Binding
    score: int
    keyword_matched: bool
    matched_text: str
    arguments: List[Optional[str]] = Field(default_factory=list)  # captured values for matched_text


class ResolveDebugInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    step_text: str
    candidate_text_count: int
    sample_candidates: List[str] = Field(default_factory=list)
    bindings_checked: int = 0


class ResolveResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    step: Step
    status: MatchStatus
    candidates: List[MatchCandidate] = Field(default_factory=list)
    best: Optional[MatchCandidate] = None
    debug: Optional[ResolveDebugInfo] = None
