"""Shared test fixtures."""

from collections.abc import Callable

import pytest

from stepbind.matching.resolver import CorpusSnapshot, Resolver
from stepbind.models import Binding, Keyword, SourceLocation

BindingFactory = Callable[..., Binding]


@pytest.fixture
def make_binding() -> BindingFactory:
    """Build a compiled binding owned by ``CalculatorSteps``."""

    def _make(keyword: Keyword, pattern: str, member: str = "Step", **kwargs) -> Binding:
        return Binding.create(
            pattern,
            keyword,
            owner="CalculatorSteps",
            member=member,
            location=SourceLocation(file_path="CalculatorSteps.cs", line=1),
            **kwargs,
        )

    return _make


@pytest.fixture
def calculator_bindings(make_binding: BindingFactory) -> list[Binding]:
    return [
        make_binding(Keyword.GIVEN, r"I have entered (\d+) into the calculator", "GivenNumeric"),
        make_binding(Keyword.GIVEN, r"I have entered (.*) into the calculator", "GivenAny"),
        make_binding(Keyword.GIVEN, "the calculator is initialized", "GivenInit"),
        make_binding(Keyword.WHEN, r'I press "([^"]+)"', "WhenPress"),
        make_binding(Keyword.THEN, r"the result should be (\d+) on the screen", "ThenNumeric"),
        make_binding(Keyword.THEN, r"the result should be (.*) on the screen", "ThenAny"),
        make_binding(Keyword.THEN, "the memory should not be affected", "ThenMemory"),
    ]


@pytest.fixture
def resolver(calculator_bindings: list[Binding]) -> Resolver:
    return Resolver(CorpusSnapshot(calculator_bindings))
