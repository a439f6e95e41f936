"""Tests for the stepbind command line."""

import json
import textwrap

import pytest
from typer.testing import CliRunner

from stepbind.cli import app


runner = CliRunner()

CALCULATOR_STEPS_CS = textwrap.dedent(
    '''\
    [Binding]
    public class CalculatorSteps
    {
        [Given(@"I have entered (\\d+) into the calculator")]
        public void GivenNumber(int number) { }

        [When(@"I press ""([^""]+)""")]
        public void WhenPress(string button) { }

        [Then(@"the result should be (\\d+) on the screen")]
        public void ThenResult(int result) { }

        [Given(@"I have (\\d+) apples")]
        public void GivenDigits(int count) { }

        [Given(@"I have (\\w+) apples")]
        public void GivenWord(string count) { }
    }
    '''
)

CALCULATOR_FEATURE = textwrap.dedent(
    """\
    Feature: Calculator

      @smoke
      Scenario: Add
        Given I have entered 50 into the calculator
        When I press "add"
        Then the result should be 120 on the screen

      Scenario: Missing
        Given nothing is bound here
    """
)


@pytest.fixture
def project(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "CalculatorSteps.cs").write_text(CALCULATOR_STEPS_CS)
    (tmp_path / "features").mkdir()
    (tmp_path / "features" / "calculator.feature").write_text(CALCULATOR_FEATURE)
    return tmp_path


class TestBindingsCommand:
    """Test `stepbind bindings`."""

    def test_lists_bindings(self, project) -> None:
        result = runner.invoke(app, ["bindings", str(project)])

        assert result.exit_code == 0
        assert "Found 5 usable step definitions" in result.stdout

    def test_missing_path(self, tmp_path) -> None:
        result = runner.invoke(app, ["bindings", str(tmp_path / "missing")])

        assert result.exit_code != 0


class TestResolveCommand:
    """Test `stepbind resolve`."""

    def test_bound(self, project) -> None:
        result = runner.invoke(app, ["resolve", str(project), "Given I have entered 50 into the calculator"])

        assert result.exit_code == 0
        assert "bound to CalculatorSteps.GivenNumber" in result.stdout

    def test_explicit_keyword(self, project) -> None:
        result = runner.invoke(app, ["resolve", str(project), 'I press "add"', "--keyword", "when"])

        assert result.exit_code == 0
        assert "CalculatorSteps.WhenPress" in result.stdout

    def test_unbound_exit_code(self, project) -> None:
        result = runner.invoke(app, ["resolve", str(project), "Given nothing is bound here"])

        assert result.exit_code == 1
        assert "no matching step definition" in result.stdout

    def test_ambiguous_exit_code(self, project) -> None:
        result = runner.invoke(app, ["resolve", str(project), "Given I have 5 apples"])

        assert result.exit_code == 2
        assert "ambiguous" in result.stdout

    def test_step_without_keyword_is_a_usage_error(self, project) -> None:
        result = runner.invoke(app, ["resolve", str(project), "I have 5 apples"])

        assert result.exit_code == 2
        assert "ambiguous" not in result.stdout


class TestCheckCommand:
    """Test `stepbind check`."""

    def test_json_report(self, project) -> None:
        result = runner.invoke(app, ["check", str(project), "--json"])

        assert result.exit_code == 0
        report = json.loads(result.stdout)
        assert report["totals"] == {"unbound": 1, "bound": 3, "ambiguous": 0}
        assert [s["status"] for s in report["steps"]] == ["bound", "bound", "bound", "unbound"]
        assert report["steps"][0]["best"] == "CalculatorSteps.GivenNumber"
        assert report["steps"][0]["scenario"] == "Add"

    def test_strict_fails_on_problems(self, project) -> None:
        result = runner.invoke(app, ["check", str(project), "--strict"])

        assert result.exit_code == 1

    def test_tag_filter(self, project) -> None:
        result = runner.invoke(app, ["check", str(project), "--tag", "@smoke", "--json", "--strict"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["totals"]["bound"] == 3

    def test_excluded_tags(self, project) -> None:
        result = runner.invoke(app, ["check", str(project), "--tag", "@smoke", "--exclude-tags", "--json"])

        assert json.loads(result.stdout)["totals"] == {"unbound": 1, "bound": 0, "ambiguous": 0}

    def test_separate_bindings_root(self, project) -> None:
        result = runner.invoke(
            app,
            ["check", str(project / "features"), "--bindings", str(project), "--json", "--concurrency", "2"],
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["totals"]["bound"] == 3
