from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models import ExampleTable, Keyword, Step


class SurfaceKeyword(str, Enum):
    """Step keyword as written in a feature file."""

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"
    STAR = "*"

    @property
    def canonical(self) -> Optional[Keyword]:
        """The canonical keyword, or None for connectives resolved from context."""
        if self in (SurfaceKeyword.AND, SurfaceKeyword.BUT, SurfaceKeyword.STAR):
            return None
        return Keyword(self.value)


class BDDScenario(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    tags: List[str] = Field(default_factory=list)
    steps: List[Step] = Field(default_factory=list)
    examples: List[ExampleTable] = Field(default_factory=list)
    is_outline: bool = False
    line: int = 1


class BDDFeature(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    file_path: str
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    background: List[Step] = Field(default_factory=list)
    scenarios: List[BDDScenario] = Field(default_factory=list)

    @property
    def all_steps(self) -> List[Step]:
        steps = list(self.background)
        for scenario in self.scenarios:
            steps.extend(scenario.steps)
        return steps
