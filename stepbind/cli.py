from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .bdd.parser import parse_feature_file
from .config import StepbindConfig
from .matching.cache import MatcherCache
from .matching.resolver import CorpusSnapshot, Resolver
from .models import Binding, Keyword, MatchStatus, Step
from .parsing.discovery import discover_bindings, discover_feature_files
from .rendering.report import (
    STATUS_STYLES,
    build_report,
    candidates_table,
    describe,
    filter_steps_by_tags,
    steps_table,
    summary_table,
)


app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

DEFAULT_LANGS = ["python", "csharp"]


def _load_config(case_insensitive: Optional[bool] = None) -> StepbindConfig:
    load_dotenv(override=False)
    config = StepbindConfig()
    if case_insensitive is not None:
        config.case_insensitive = case_insensitive
    return config


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_bindings(root: Path, cfg: StepbindConfig, include_langs: List[str]) -> List[Binding]:
    if not root.exists():
        raise typer.BadParameter(f"Path not found: {root}")
    cache = MatcherCache(max_size=cfg.matcher_cache_size, ttl_s=cfg.matcher_cache_ttl_s)
    return discover_bindings(
        root,
        include_langs=include_langs,
        ignore_globs=cfg.ignore_globs,
        case_insensitive=cfg.case_insensitive,
        cache=cache,
        timeout_s=cfg.match_timeout_s,
    )


def _split_step(step: str, keyword: Optional[str]) -> tuple[Keyword, str]:
    if keyword:
        return Keyword.parse(keyword), step.strip()
    first, _, rest = step.strip().partition(" ")
    try:
        return Keyword.parse(first), rest.strip()
    except ValueError:
        raise typer.BadParameter(
            "Step must start with Given/When/Then, or pass --keyword", param_hint="STEP"
        ) from None


@app.command()
def bindings(
    path: str = typer.Argument(..., help="Directory (or file) with step definitions"),
    include_langs: List[str] = typer.Option(DEFAULT_LANGS, help="Binding languages to scan"),
    case_insensitive: Optional[bool] = typer.Option(None, help="Override case sensitivity"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """List the step definitions discovered under PATH."""
    _setup_logging(verbose)
    cfg = _load_config(case_insensitive)
    found = _load_bindings(Path(path).resolve(), cfg, include_langs)
    snapshot = CorpusSnapshot(found)

    table = Table(title="Step Definitions")
    table.add_column("Keyword")
    table.add_column("Pattern")
    table.add_column("Binding")
    table.add_column("Groups", justify="right")
    table.add_column("Location")
    for b in snapshot.get_all_bindings():
        literal = " [dim](literal)[/dim]" if b.matcher.literal else ""
        table.add_row(
            b.keyword.value,
            b.pattern_raw + literal,
            b.signature,
            str(b.pattern.capture_groups),
            str(b.location) if b.location else "",
        )
    console.print(table)

    for b in snapshot.excluded:
        console.print(f"[yellow]Unusable pattern[/yellow] {b.pattern_raw!r} at {b.location}")
    console.print(f"Found [bold]{len(snapshot)}[/bold] usable step definitions")


@app.command()
def resolve(
    path: str = typer.Argument(..., help="Directory (or file) with step definitions"),
    step: str = typer.Argument(..., help='Step sentence, e.g. "Given I have entered 50 into the calculator"'),
    keyword: Optional[str] = typer.Option(None, help="Canonical keyword when STEP does not start with one"),
    include_langs: List[str] = typer.Option(DEFAULT_LANGS, help="Binding languages to scan"),
    case_insensitive: Optional[bool] = typer.Option(None, help="Override case sensitivity"),
    debug: bool = typer.Option(False, help="Show resolution debug details"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Resolve a single step against the step definitions under PATH."""
    _setup_logging(verbose)
    cfg = _load_config(case_insensitive)
    kw, text = _split_step(step, keyword)
    resolver = Resolver(CorpusSnapshot(_load_bindings(Path(path).resolve(), cfg, include_langs)), cfg.weights())

    result = resolver.resolve(Step.from_text(kw, text, max_candidates=cfg.max_candidates), debug=debug)
    style = STATUS_STYLES[result.status]
    console.print(f"[{style}]{result.status.value}[/{style}]: {describe(result)}")
    if result.candidates:
        console.print(candidates_table(result))
    if result.debug:
        console.print(result.debug.model_dump())

    if result.status is MatchStatus.UNBOUND:
        raise typer.Exit(code=1)
    if result.status is MatchStatus.AMBIGUOUS:
        raise typer.Exit(code=2)


@app.command()
def check(
    path: str = typer.Argument(..., help="Directory (or .feature file) with feature files"),
    bindings_path: Optional[str] = typer.Option(None, "--bindings", help="Step definitions root (defaults to PATH)"),
    include_langs: List[str] = typer.Option(DEFAULT_LANGS, help="Binding languages to scan"),
    tag: List[str] = typer.Option([], "--tag", help="Only report steps carrying one of these tags"),
    exclude_tags: bool = typer.Option(False, help="Treat --tag as an exclusion list"),
    problems_only: bool = typer.Option(False, help="List only unbound and ambiguous steps"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    strict: bool = typer.Option(False, help="Exit with code 1 when any step is unbound or ambiguous"),
    concurrency: int = typer.Option(1, help="Parallel resolution workers"),
    case_insensitive: Optional[bool] = typer.Option(None, help="Override case sensitivity"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Check that every step in the feature files under PATH has exactly one binding."""
    _setup_logging(verbose)
    cfg = _load_config(case_insensitive)
    root = Path(path).resolve()
    if not root.exists():
        raise typer.BadParameter(f"Path not found: {root}")
    binding_root = Path(bindings_path).resolve() if bindings_path else (root if root.is_dir() else root.parent)

    resolver = Resolver(CorpusSnapshot(_load_bindings(binding_root, cfg, include_langs)), cfg.weights())

    steps: List[Step] = []
    for feature_path in discover_feature_files(root, cfg.feature_glob, cfg.ignore_globs):
        feature = parse_feature_file(
            feature_path, max_candidates=cfg.max_candidates, max_example_rows=cfg.max_example_rows
        )
        if feature is None:
            logging.getLogger(__name__).debug("No Feature: line in %s", feature_path)
            continue
        steps.extend(feature.all_steps)

    tag_filter = tag or cfg.tag_filter
    mode = "exclude" if exclude_tags else cfg.tag_filter_mode
    steps = filter_steps_by_tags(steps, tag_filter, mode)

    report = build_report(resolver.resolve_all(steps, concurrency=concurrency))
    if as_json:
        typer.echo(report.model_dump_json(indent=2))
    else:
        if report.steps:
            console.print(steps_table(report, only_problems=problems_only))
        console.print(summary_table(report))

    if strict and report.problems:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
