from __future__ import annotations

import ast
import logging
import re
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from pathspec import PathSpec
from pydantic import BaseModel

from ..matching.cache import MatcherCache
from ..matching.compiler import DEFAULT_MATCH_TIMEOUT_S
from ..models import Binding, Keyword, SourceLocation


logger = logging.getLogger(__name__)

SUPPORTED_LANGS = {"python", "csharp"}

# Python step decorators: behave and pytest-bdd
PY_STEP_DECORATORS = {"given": (Keyword.GIVEN,), "when": (Keyword.WHEN,), "then": (Keyword.THEN,)}
PY_STEP_DECORATORS["step"] = (Keyword.GIVEN, Keyword.WHEN, Keyword.THEN)
PY_REGEX_PARSERS = {"re"}
PY_FORMAT_PARSERS = {"parse", "cfparse"}
PARSE_FIELD = re.compile(r"\{([^{}]*)\}")
PARSE_TYPE_REGEX = {"d": r"(-?\d+)", "n": r"(-?[\d,]+)", "w": r"(\w+)", "f": r"(-?\d*\.\d+)", "g": r"(\S+)"}

# C# Reqnroll / SpecFlow attributes: [Given(@"pattern")], [When("pattern")]
CS_BINDING_ATTRIBUTE = re.compile(r'\[\s*(Given|When|Then)\s*\(\s*(@?"(?:[^"\\]|\\.|"")*")\s*\)\s*\]')
CS_CLASS_DECLARATION = re.compile(r"\b(?:partial\s+)?class\s+(\w+)")
CS_METHOD_DECLARATION = re.compile(
    r"(?:public|private|protected|internal)?\s*(?:static\s+)?(?:async\s+)?(?:Task(?:<[^>]+>)?|void)\s+(\w+)\s*\("
)


class DiscoveredPattern(BaseModel):
    """A step-definition pattern found in source, before compilation."""

    keyword: Keyword
    pattern: str
    owner: str
    member: str
    language: str
    file_path: str
    line: int


def _build_ignore_spec(ignore_globs: List[str]) -> PathSpec:
    return PathSpec.from_lines("gitwildmatch", ignore_globs)


def iter_files(root: Path, ignore_globs: List[str], suffixes: Sequence[str]) -> Iterator[Path]:
    ignore_spec = _build_ignore_spec(ignore_globs)
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root)
        if ignore_spec.match_file(str(rel)):
            continue
        if path.is_dir():
            continue
        if path.suffix in suffixes:
            yield path


def discover_feature_files(root: Path, feature_glob: str, ignore_globs: List[str]) -> List[Path]:
    if root.is_file():
        return [root]
    ignore_spec = _build_ignore_spec(ignore_globs)
    return [
        path
        for path in sorted(root.glob(feature_glob))
        if path.is_file() and not ignore_spec.match_file(str(path.relative_to(root)))
    ]


def discover_patterns(root: Path, include_langs: List[str], ignore_globs: List[str]) -> List[DiscoveredPattern]:
    include = set(lang.lower() for lang in include_langs) & SUPPORTED_LANGS
    suffixes = []
    if "python" in include:
        suffixes.append(".py")
    if "csharp" in include:
        suffixes.append(".cs")

    files = [root] if root.is_file() else iter_files(root, ignore_globs, suffixes)
    found: List[DiscoveredPattern] = []
    for path in files:
        if path.suffix == ".py" and "python" in include:
            found.extend(_discover_python(path))
        elif path.suffix == ".cs" and "csharp" in include:
            found.extend(_discover_csharp(path))
    return found


def discover_bindings(
    root: Path,
    include_langs: List[str],
    ignore_globs: List[str],
    case_insensitive: bool = False,
    cache: Optional[MatcherCache] = None,
    timeout_s: Optional[float] = DEFAULT_MATCH_TIMEOUT_S,
) -> List[Binding]:
    return [
        Binding.create(
            p.pattern,
            p.keyword,
            owner=p.owner,
            member=p.member,
            location=SourceLocation(file_path=p.file_path, line=p.line),
            case_insensitive=case_insensitive,
            cache=cache,
            timeout_s=timeout_s,
        )
        for p in discover_patterns(root, include_langs, ignore_globs)
    ]


# Python


def parse_format_to_regex(fmt: str) -> str:
    """Translate a ``parse``-style step string ("I eat {count:d} cukes") to a regex."""
    out = []
    pos = 0
    for m in PARSE_FIELD.finditer(fmt):
        out.append(re.escape(fmt[pos : m.start()]))
        spec = m.group(1)
        type_code = spec.split(":", 1)[1] if ":" in spec else ""
        out.append(PARSE_TYPE_REGEX.get(type_code, "(.+?)"))
        pos = m.end()
    out.append(re.escape(fmt[pos:]))
    return "".join(out)


def _call_name(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    return None


def _string_arg(node: ast.AST) -> Optional[str]:
    if isinstance(node, ast.Constant) and isinstance(node.value, str):
        return node.value
    return None


def _decorator_pattern(arg: ast.AST, regex_mode: bool) -> Optional[str]:
    text = _string_arg(arg)
    if text is not None:
        if regex_mode:
            return text
        # behave's default matcher and pytest-bdd plain strings
        return parse_format_to_regex(text) if PARSE_FIELD.search(text) else re.escape(text)
    if isinstance(arg, ast.Call) and arg.args:
        parser = _call_name(arg.func)
        inner = _string_arg(arg.args[0])
        if inner is None:
            return None
        if parser in PY_REGEX_PARSERS:
            return inner
        if parser in PY_FORMAT_PARSERS:
            return parse_format_to_regex(inner)
    return None


def _step_matcher_mode(node: ast.stmt) -> Optional[str]:
    # behave: use_step_matcher("re") switches the module to regular expressions
    if isinstance(node, ast.Expr) and isinstance(node.value, ast.Call):
        name = _call_name(node.value.func)
        if name in ("use_step_matcher", "step_matcher") and node.value.args:
            return _string_arg(node.value.args[0])
    return None


def _function_patterns(
    func: ast.AST, owner: str, file_path: Path, regex_mode: bool
) -> List[DiscoveredPattern]:
    found: List[DiscoveredPattern] = []
    for dec in func.decorator_list:
        if not isinstance(dec, ast.Call) or not dec.args:
            continue
        keywords = PY_STEP_DECORATORS.get((_call_name(dec.func) or "").lower())
        if not keywords:
            continue
        pattern = _decorator_pattern(dec.args[0], regex_mode)
        if pattern is None:
            logger.debug("Skipping non-literal step decorator in %s:%s", file_path, dec.lineno)
            continue
        for keyword in keywords:
            found.append(
                DiscoveredPattern(
                    keyword=keyword,
                    pattern=pattern,
                    owner=owner,
                    member=func.name,
                    language="python",
                    file_path=str(file_path),
                    line=dec.lineno,
                )
            )
    return found


def _discover_python(file_path: Path) -> List[DiscoveredPattern]:
    source = file_path.read_text(encoding="utf-8", errors="ignore")
    try:
        tree = ast.parse(source)
    except (SyntaxError, ValueError):
        logger.debug("Skipping unparsable Python file %s", file_path)
        return []

    module_name = file_path.stem
    regex_mode = False
    found: List[DiscoveredPattern] = []
    for node in tree.body:
        mode = _step_matcher_mode(node)
        if mode is not None:
            regex_mode = mode == "re"
            continue
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            found.extend(_function_patterns(node, module_name, file_path, regex_mode))
        elif isinstance(node, ast.ClassDef):
            for member in node.body:
                if isinstance(member, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    found.extend(_function_patterns(member, node.name, file_path, regex_mode))
    return found


# C#


def unescape_csharp_string(literal: str) -> str:
    """Value of a C# string literal (``@"..."`` verbatim or ``"..."`` regular)."""
    text = literal.strip()
    verbatim = text.startswith("@")
    if verbatim:
        text = text[1:]
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1]
    if verbatim:
        return text.replace('""', '"')

    escapes = {'"': '"', "\\": "\\", "n": "\n", "r": "\r", "t": "\t", "'": "'", "0": "\0"}
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text):
            out.append(escapes.get(text[i + 1], "\\" + text[i + 1]))
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _find_method_name(lines: List[str], start: int) -> str:
    for line in lines[start : start + 6]:
        m = CS_METHOD_DECLARATION.search(line)
        if m:
            return m.group(1)
    return "UnknownMethod"


def _discover_csharp(file_path: Path) -> List[DiscoveredPattern]:
    text = file_path.read_text(encoding="utf-8", errors="ignore")
    if "[Given" not in text and "[When" not in text and "[Then" not in text:
        return []

    lines = text.splitlines()
    owner = "Unknown"
    found: List[DiscoveredPattern] = []
    for idx, line in enumerate(lines):
        class_match = CS_CLASS_DECLARATION.search(line)
        if class_match:
            owner = class_match.group(1)
        for m in CS_BINDING_ATTRIBUTE.finditer(line):
            found.append(
                DiscoveredPattern(
                    keyword=Keyword(m.group(1)),
                    pattern=unescape_csharp_string(m.group(2)),
                    owner=owner,
                    member=_find_method_name(lines, idx),
                    language="csharp",
                    file_path=str(file_path),
                    line=idx + 1,
                )
            )
    return found
