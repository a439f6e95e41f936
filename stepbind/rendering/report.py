from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field
from rich.table import Table

from ..models import MatchStatus, ResolveResult, Step


STATUS_STYLES = {
    MatchStatus.BOUND: "green",
    MatchStatus.UNBOUND: "red",
    MatchStatus.AMBIGUOUS: "yellow",
}


def should_show_step(tags: Sequence[str], tag_filter: Sequence[str], mode: str = "include") -> bool:
    """Whether a step with ``tags`` passes the report tag filter (case-insensitive)."""
    if not tag_filter:
        return True
    step_tags = {t.lower() for t in tags}
    hit = any(t.lower() in step_tags for t in tag_filter)
    return hit if mode == "include" else not hit


def filter_steps_by_tags(steps: Sequence[Step], tag_filter: Sequence[str], mode: str = "include") -> List[Step]:
    return [s for s in steps if should_show_step(s.tags, tag_filter, mode)]


class CandidateEntry(BaseModel):
    signature: str
    pattern: str
    score: int
    keyword_matched: bool
    matched_text: str
    arguments: List[Optional[str]] = Field(default_factory=list)
    location: Optional[str] = None


class StepEntry(BaseModel):
    keyword: str
    text: str
    status: MatchStatus
    location: Optional[str] = None
    scenario: Optional[str] = None
    best: Optional[str] = None
    candidates: List[CandidateEntry] = Field(default_factory=list)


class CheckReport(BaseModel):
    totals: Dict[str, int] = Field(default_factory=dict)
    steps: List[StepEntry] = Field(default_factory=list)

    @property
    def problems(self) -> int:
        return self.totals.get(MatchStatus.UNBOUND.value, 0) + self.totals.get(MatchStatus.AMBIGUOUS.value, 0)


def _entry(result: ResolveResult) -> StepEntry:
    step = result.step
    return StepEntry(
        keyword=step.keyword.value,
        text=step.text,
        status=result.status,
        location=str(step.location) if step.location else None,
        scenario=step.scenario,
        best=result.best.binding.signature if result.best else None,
        candidates=[
            CandidateEntry(
                signature=c.binding.signature,
                pattern=c.binding.pattern_raw,
                score=c.score,
                keyword_matched=c.keyword_matched,
                matched_text=c.matched_text,
                arguments=list(c.arguments),
                location=str(c.binding.location) if c.binding.location else None,
            )
            for c in result.candidates
        ],
    )


def build_report(results: Sequence[ResolveResult]) -> CheckReport:
    totals = {status.value: 0 for status in MatchStatus}
    for result in results:
        totals[result.status.value] += 1
    return CheckReport(totals=totals, steps=[_entry(r) for r in results])


def describe(result: ResolveResult) -> str:
    """One-line human summary of a resolution."""
    if result.status is MatchStatus.BOUND:
        return f"bound to {result.best.binding.signature}"
    if result.status is MatchStatus.AMBIGUOUS:
        tied = [c.binding.signature for c in result.candidates if c.score == result.candidates[0].score]
        return "ambiguous between " + ", ".join(tied)
    return "no matching step definition"


def candidates_table(result: ResolveResult) -> Table:
    table = Table(title=f"{result.step.keyword.value} {result.step.text}")
    table.add_column("Score", justify="right")
    table.add_column("Binding")
    table.add_column("Pattern")
    table.add_column("Matched text")
    table.add_column("Arguments")
    table.add_column("Location")
    for c in result.candidates:
        kw = "" if c.keyword_matched else " [dim](other keyword)[/dim]"
        table.add_row(
            str(c.score),
            c.binding.signature + kw,
            c.binding.pattern_raw,
            c.matched_text,
            ", ".join(repr(a) for a in c.arguments),
            str(c.binding.location) if c.binding.location else "",
        )
    return table


def steps_table(report: CheckReport, only_problems: bool = False) -> Table:
    table = Table(title="Step Bindings")
    table.add_column("Location")
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Binding")
    for entry in report.steps:
        if only_problems and entry.status is MatchStatus.BOUND:
            continue
        style = STATUS_STYLES[entry.status]
        if entry.status is MatchStatus.AMBIGUOUS:
            binding = ", ".join(c.signature for c in entry.candidates if c.score == entry.candidates[0].score)
        else:
            binding = entry.best or ""
        table.add_row(
            entry.location or "",
            f"{entry.keyword} {entry.text}",
            f"[{style}]{entry.status.value}[/{style}]",
            binding,
        )
    return table


def summary_table(report: CheckReport) -> Table:
    table = Table(title="Summary")
    table.add_column("Status")
    table.add_column("Steps", justify="right")
    for status in MatchStatus:
        style = STATUS_STYLES[status]
        table.add_row(f"[{style}]{status.value}[/{style}]", str(report.totals.get(status.value, 0)))
    return table
