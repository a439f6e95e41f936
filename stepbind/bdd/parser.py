from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from ..matching.constants import MAX_CANDIDATES, MAX_EXAMPLE_ROWS
from ..models import ExampleTable, Keyword, SourceLocation, Step
from .models import BDDFeature, BDDScenario, SurfaceKeyword


FEATURE_LINE = re.compile(r"^Feature:\s*(.*)$", re.IGNORECASE)
RULE_LINE = re.compile(r"^Rule:\s*(.*)$", re.IGNORECASE)
BACKGROUND_LINE = re.compile(r"^Background:\s*(.*)$", re.IGNORECASE)
SCENARIO_LINE = re.compile(r"^(Scenario Outline|Scenario Template|Scenario|Example):\s*(.*)$", re.IGNORECASE)
EXAMPLES_LINE = re.compile(r"^(Examples|Scenarios):\s*(.*)$", re.IGNORECASE)
STEP_LINE = re.compile(r"^(Given|When|Then|And|But|\*)\s+(.+)$", re.IGNORECASE)
TAG_LINE = re.compile(r"^(@\S+(?:\s+@\S+)*)\s*(?:#.*)?$")
TABLE_ROW = re.compile(r"^\|(.*)\|$")
DOC_STRING_FENCE = re.compile(r'^("""|```)')
CELL_SEPARATOR = re.compile(r"(?<!\\)\|")


@dataclass
class _PendingScenario:
    name: str
    tags: List[str]
    is_outline: bool
    line: int
    steps: List[Tuple[Keyword, str, int]] = field(default_factory=list)
    examples: List[dict] = field(default_factory=list)


def _surface_keyword(word: str) -> SurfaceKeyword:
    if word == "*":
        return SurfaceKeyword.STAR
    return SurfaceKeyword(word.capitalize())


def _split_row(inner: str) -> List[str]:
    return [cell.strip().replace("\\|", "|") for cell in CELL_SEPARATOR.split(inner)]


def _merge_tags(*groups: List[str]) -> List[str]:
    merged: List[str] = []
    for group in groups:
        for tag in group:
            if tag not in merged:
                merged.append(tag)
    return merged


def parse_feature(
    text: str,
    file_path: str = "<string>",
    max_candidates: int = MAX_CANDIDATES,
    max_example_rows: int = MAX_EXAMPLE_ROWS,
) -> Optional[BDDFeature]:
    """Parse Gherkin source into a :class:`BDDFeature` of resolvable steps.

    ``And``/``But``/``*`` take the canonical keyword of the step before them
    (``Given`` at the start of each scenario or background). Outline steps are
    expanded against the scenario's Examples tables once the scenario is
    complete. Returns None when the text has no ``Feature:`` line.
    """
    feature_name: Optional[str] = None
    feature_tags: List[str] = []
    description: List[str] = []
    background: List[Step] = []
    scenarios: List[BDDScenario] = []

    pending_tags: List[str] = []
    current: Optional[_PendingScenario] = None
    current_examples: Optional[dict] = None
    in_background = False
    in_header = False
    in_doc_string: Optional[str] = None
    last_keyword = Keyword.GIVEN

    def finish() -> None:
        nonlocal current, current_examples
        if current is None:
            return
        tables = [
            ExampleTable(headers=ex["headers"], rows=ex["rows"], tags=ex["tags"])
            for ex in current.examples
        ]
        tags = _merge_tags(feature_tags, current.tags)
        steps = [
            Step.from_text(
                keyword,
                step_text,
                tables if current.is_outline else None,
                max_candidates=max_candidates,
                tags=tags,
                location=SourceLocation(file_path=file_path, line=line_no),
                scenario=current.name,
            )
            for keyword, step_text, line_no in current.steps
        ]
        scenarios.append(
            BDDScenario(
                name=current.name,
                tags=current.tags,
                steps=steps,
                examples=tables,
                is_outline=current.is_outline,
                line=current.line,
            )
        )
        current = None
        current_examples = None

    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()

        if in_doc_string is not None:
            if line.startswith(in_doc_string):
                in_doc_string = None
            continue
        fence = DOC_STRING_FENCE.match(line)
        if fence:
            in_doc_string = fence.group(1)
            continue

        if not line or line.startswith("#"):
            continue

        tag_match = TAG_LINE.match(line)
        if tag_match:
            pending_tags.extend(tag_match.group(1).split())
            continue

        m = FEATURE_LINE.match(line)
        if m:
            feature_name = m.group(1).strip()
            feature_tags = pending_tags
            pending_tags = []
            in_header = True
            continue

        if RULE_LINE.match(line):
            finish()
            in_background = False
            in_header = False
            pending_tags = []
            continue

        if BACKGROUND_LINE.match(line):
            finish()
            in_background = True
            in_header = False
            last_keyword = Keyword.GIVEN
            pending_tags = []
            continue

        m = SCENARIO_LINE.match(line)
        if m:
            finish()
            kind = m.group(1).lower()
            current = _PendingScenario(
                name=m.group(2).strip(),
                tags=pending_tags,
                is_outline=kind in ("scenario outline", "scenario template"),
                line=line_no,
            )
            pending_tags = []
            in_background = False
            in_header = False
            last_keyword = Keyword.GIVEN
            continue

        m = EXAMPLES_LINE.match(line)
        if m:
            if current is not None and current.is_outline:
                current_examples = {"headers": [], "rows": [], "tags": pending_tags}
                current.examples.append(current_examples)
            pending_tags = []
            continue

        m = TABLE_ROW.match(line)
        if m:
            # Data tables under ordinary steps are not used for matching
            if current_examples is not None:
                cells = _split_row(m.group(1))
                if not current_examples["headers"]:
                    current_examples["headers"] = cells
                elif len(current_examples["rows"]) < max_example_rows:
                    current_examples["rows"].append(cells)
            continue

        m = STEP_LINE.match(line)
        if m:
            surface = _surface_keyword(m.group(1))
            keyword = surface.canonical or last_keyword
            last_keyword = keyword
            step_text = m.group(2).strip()
            if in_background:
                background.append(
                    Step.from_text(
                        keyword,
                        step_text,
                        max_candidates=max_candidates,
                        tags=list(feature_tags),
                        location=SourceLocation(file_path=file_path, line=line_no),
                    )
                )
            elif current is not None:
                current.steps.append((keyword, step_text, line_no))
            continue

        if in_header:
            description.append(line)

    finish()

    if feature_name is None:
        return None

    return BDDFeature(
        name=feature_name,
        file_path=file_path,
        description="\n".join(description),
        tags=feature_tags,
        background=background,
        scenarios=scenarios,
    )


def parse_feature_file(path: Path, **kwargs) -> Optional[BDDFeature]:
    text = path.read_text(encoding="utf-8", errors="ignore")
    return parse_feature(text, file_path=str(path), **kwargs)
