from __future__ import annotations

import re


# Limits
MAX_CANDIDATES = 20  # candidate texts per step, fallback included
MAX_EXAMPLE_ROWS = 20  # rows taken from a single Examples table by the feature parser

# Placeholder substitute used for the fallback candidate and for missing cells
FALLBACK_VALUE = "X"

# Scoring weights (defaults; see config.StepbindConfig to override)
SCORE_KEYWORD_MATCH = 120
PENALTY_KEYWORD_FALLBACK = 40
SCORE_LITERAL_CHAR = 1
PENALTY_WILDCARD = 15
SCORE_TYPED_CAPTURE = 20
SCORE_ANCHORED_PATTERN = 30

# Step text
PLACEHOLDER_PATTERN = re.compile(r"<([^<>]+)>")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Pattern metasyntax (applied to raw pattern strings, not to step text)
WILDCARD_PATTERN = re.compile(r"\(\.\*\)|\(\.\+\)|\.\*|\.\+")
TYPED_CAPTURE_PATTERN = re.compile(r'\\d\+|\[\^"\]\+|\[\^"\]\*|\\w\+|\[\^\\s\]\+')

# Metasyntax stripped before counting literal characters
GROUPED_WILDCARD_PATTERN = re.compile(r"\(\.\*\)|\(\.\+\)")
BARE_WILDCARD_PATTERN = re.compile(r"\.\*|\.\+|\.\?")
SHORTHAND_CLASS_PATTERN = re.compile(r"\\[dws][+*]")
NEGATED_CLASS_PATTERN = re.compile(r"\[\^[^\]]+\][+*]?")
GROUP_PATTERN = re.compile(r"\([^)]*\)")
