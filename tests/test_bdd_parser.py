"""Tests for Gherkin feature parsing."""

from stepbind.bdd.models import SurfaceKeyword
from stepbind.bdd.parser import parse_feature, parse_feature_file
from stepbind.models import Keyword


CALCULATOR_FEATURE = """\
@calculator
Feature: Calculator
  In order to avoid silly mistakes
  As a math idiot

  Background:
    Given the calculator is initialized

  @smoke
  Scenario: Add two numbers
    Given I have entered 50 into the calculator
    And I have entered 70 into the calculator
    When I press "add"
    Then the result should be 120 on the screen
    But the memory should not be affected

  Scenario Outline: Add many numbers
    Given I have entered <first> into the calculator
    * I have entered <second> into the calculator
    When I press "add"
    Then the result should be <total> on the screen

    Examples:
      | first | second | total |
      | 1     | 2      | 3     |
      | 10    | 20     | 30    |
"""


class TestParseFeature:
    """Test parse_feature()."""

    def test_feature_header(self) -> None:
        feature = parse_feature(CALCULATOR_FEATURE, file_path="calculator.feature")

        assert feature.name == "Calculator"
        assert feature.tags == ["@calculator"]
        assert feature.description == "In order to avoid silly mistakes\nAs a math idiot"
        assert feature.file_path == "calculator.feature"

    def test_background_steps(self) -> None:
        feature = parse_feature(CALCULATOR_FEATURE)

        assert len(feature.background) == 1
        assert feature.background[0].keyword is Keyword.GIVEN
        assert feature.background[0].text == "the calculator is initialized"

    def test_connectives_take_previous_keyword(self) -> None:
        scenario = parse_feature(CALCULATOR_FEATURE).scenarios[0]

        assert [(s.keyword, s.text) for s in scenario.steps] == [
            (Keyword.GIVEN, "I have entered 50 into the calculator"),
            (Keyword.GIVEN, "I have entered 70 into the calculator"),
            (Keyword.WHEN, 'I press "add"'),
            (Keyword.THEN, "the result should be 120 on the screen"),
            (Keyword.THEN, "the memory should not be affected"),
        ]

    def test_step_metadata(self) -> None:
        scenario = parse_feature(CALCULATOR_FEATURE, file_path="calculator.feature").scenarios[0]
        first = scenario.steps[0]

        assert scenario.name == "Add two numbers"
        assert scenario.tags == ["@smoke"]
        assert scenario.line == 10
        assert first.tags == ["@calculator", "@smoke"]
        assert first.scenario == "Add two numbers"
        assert str(first.location) == "calculator.feature:11"

    def test_plain_scenario_has_single_candidate(self) -> None:
        scenario = parse_feature(CALCULATOR_FEATURE).scenarios[0]

        assert all(len(s.candidate_texts) == 1 for s in scenario.steps)

    def test_outline_steps_are_expanded(self) -> None:
        outline = parse_feature(CALCULATOR_FEATURE).scenarios[1]

        assert outline.is_outline
        assert outline.examples[0].headers == ["first", "second", "total"]
        assert outline.examples[0].rows == [["1", "2", "3"], ["10", "20", "30"]]
        assert outline.steps[0].candidate_texts == [
            "I have entered X into the calculator",
            "I have entered 1 into the calculator",
            "I have entered 10 into the calculator",
        ]
        assert outline.steps[1].keyword is Keyword.GIVEN
        assert outline.steps[2].candidate_texts == ['I press "add"']

    def test_all_steps(self) -> None:
        feature = parse_feature(CALCULATOR_FEATURE)

        assert len(feature.all_steps) == 1 + 5 + 4

    def test_no_feature_line(self) -> None:
        assert parse_feature("Scenario: orphan\n  Given something\n") is None

    def test_keywords_reset_per_scenario(self) -> None:
        text = """\
Feature: Reset
  Scenario: First
    Then it is done
  Scenario: Second
    And it starts
"""
        feature = parse_feature(text)

        assert feature.scenarios[1].steps[0].keyword is Keyword.GIVEN

    def test_doc_strings_and_comments_are_skipped(self) -> None:
        text = '''\
Feature: Docs
  # Given this is a comment
  Scenario: Payload
    Given the payload
      """
      Given not a step
      | not | a row |
      """
    Then it is accepted
'''
        scenario = parse_feature(text).scenarios[0]

        assert [s.text for s in scenario.steps] == ["the payload", "it is accepted"]

    def test_data_tables_are_not_examples(self) -> None:
        text = """\
Feature: Tables
  Scenario: Users
    Given these users:
      | name |
      | ann  |
"""
        scenario = parse_feature(text).scenarios[0]

        assert scenario.examples == []
        assert scenario.steps[0].candidate_texts == ["these users:"]

    def test_multiple_examples_tables_and_row_cap(self) -> None:
        text = """\
Feature: Statuses
  Scenario Template: Status
    Then the status should be "<status>"

    @current
    Examples: Live
      | status  |
      | active  |
      | pending |

    Scenarios: Gone
      | status   |
      | deleted  |
      | archived |
"""
        scenario = parse_feature(text, max_example_rows=1).scenarios[0]

        assert [t.rows for t in scenario.examples] == [[["active"]], [["deleted"]]]
        assert scenario.examples[0].tags == ["@current"]
        assert scenario.steps[0].candidate_texts == [
            'the status should be "X"',
            'the status should be "active"',
            'the status should be "deleted"',
        ]

    def test_escaped_pipes_in_cells(self) -> None:
        text = r"""
Feature: Pipes
  Scenario Outline: Pipe
    Given the text <value>

    Examples:
      | value  |
      | a \| b |
"""
        scenario = parse_feature(text).scenarios[0]

        assert scenario.steps[0].candidate_texts[1] == "the text a | b"

    def test_rule_blocks(self) -> None:
        text = """\
Feature: Rules
  Rule: Positive numbers
    Example: one
      Given the number 1
  Rule: Negative numbers
    Example: minus one
      Given the number -1
"""
        feature = parse_feature(text)

        assert [s.name for s in feature.scenarios] == ["one", "minus one"]
        assert feature.description == ""


class TestParseFeatureFile:
    """Test parse_feature_file()."""

    def test_reads_from_disk(self, tmp_path) -> None:
        path = tmp_path / "calculator.feature"
        path.write_text(CALCULATOR_FEATURE, encoding="utf-8")

        feature = parse_feature_file(path)

        assert feature.file_path == str(path)
        assert feature.scenarios[0].steps[0].location.line == 11


class TestSurfaceKeyword:
    """Test SurfaceKeyword."""

    def test_canonical(self) -> None:
        assert SurfaceKeyword.WHEN.canonical is Keyword.WHEN
        assert SurfaceKeyword.AND.canonical is None
        assert SurfaceKeyword.STAR.canonical is None
