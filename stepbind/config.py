from __future__ import annotations

from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .matching import constants
from .matching.scoring import ScoreWeights


class StepbindConfig(BaseSettings):
    """Matching configuration loaded from ``STEPBIND_*`` environment variables.

    The case-sensitivity flag, the candidate cap and the scoring weights all
    change ranking outcomes when modified.
    """

    model_config = SettingsConfigDict(env_file=".env", env_prefix="STEPBIND_", extra="ignore")

    case_insensitive: bool = Field(default=False, description="Compile step patterns case-insensitively")
    max_candidates: int = Field(
        default=constants.MAX_CANDIDATES, ge=1, description="Max candidate texts expanded per step"
    )

    # Scoring
    keyword_match_bonus: int = Field(default=constants.SCORE_KEYWORD_MATCH)
    keyword_fallback_penalty: int = Field(default=constants.PENALTY_KEYWORD_FALLBACK)
    literal_char_weight: int = Field(default=constants.SCORE_LITERAL_CHAR)
    wildcard_penalty: int = Field(default=constants.PENALTY_WILDCARD)
    typed_capture_bonus: int = Field(default=constants.SCORE_TYPED_CAPTURE)
    anchored_bonus: int = Field(default=constants.SCORE_ANCHORED_PATTERN)

    # Matching budget and matcher cache
    match_timeout_s: float = Field(default=0.25, description="Per-attempt match budget; 0 disables it")
    matcher_cache_size: int = Field(default=2048, ge=1)
    matcher_cache_ttl_s: float = Field(default=600.0, description="Matcher cache entry lifetime; 0 keeps entries")

    # Feature files
    max_example_rows: int = Field(
        default=constants.MAX_EXAMPLE_ROWS, ge=0, description="Rows read from each Examples table"
    )
    feature_glob: str = Field(default="**/*.feature")
    tag_filter: List[str] = Field(default_factory=list, description="Tags used to filter reported steps")
    tag_filter_mode: Literal["include", "exclude"] = Field(default="include")

    # Discovery
    ignore_globs: List[str] = Field(
        default_factory=lambda: [
            "**/.git/**",
            "**/.venv/**",
            "**/node_modules/**",
            "**/dist/**",
            "**/build/**",
            "**/bin/**",
            "**/obj/**",
        ]
    )

    def weights(self) -> ScoreWeights:
        return ScoreWeights(
            keyword_match_bonus=self.keyword_match_bonus,
            keyword_fallback_penalty=self.keyword_fallback_penalty,
            literal_char_weight=self.literal_char_weight,
            wildcard_penalty=self.wildcard_penalty,
            typed_capture_bonus=self.typed_capture_bonus,
            anchored_bonus=self.anchored_bonus,
        )
