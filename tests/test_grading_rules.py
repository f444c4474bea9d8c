"""
Tests for the strategy table, objective grader and score aggregator.
"""

import pytest

from examgrader.core.exceptions import ConfigurationError, ValidationError
from examgrader.core.models import (
    AnswerOutcome, GradableQuestion, GradingStrategy, QuestionResult, QuestionType,
)
from examgrader.grading.aggregator import ScoreAggregator, letter_for, percentage_of
from examgrader.grading.objective import ObjectiveGrader, grade_objective, is_exact_match
from examgrader.grading.strategy import STRATEGY_TABLE, strategy_for


# ==================== Strategy table ====================

def test_every_question_type_has_a_strategy():
    """The table covers the whole QuestionType enum."""
    assert set(STRATEGY_TABLE) == set(QuestionType)


@pytest.mark.parametrize("question_type,expected", [
    ("MULTIPLE_CHOICE", GradingStrategy.OBJECTIVE),
    ("TRUE_FALSE", GradingStrategy.OBJECTIVE),
    ("SHORT_ANSWER", GradingStrategy.ASSISTED),
    ("LONG_ANSWER", GradingStrategy.ASSISTED),
    ("FILL_BLANKS", GradingStrategy.ASSISTED),
    ("MATCHING", GradingStrategy.MANUAL_ONLY),
    (QuestionType.TRUE_FALSE, GradingStrategy.OBJECTIVE),
])
def test_strategy_for_known_types(question_type, expected):
    """Test strategy selection per question type."""
    assert strategy_for(question_type) == expected


def test_unknown_type_goes_to_manual_review():
    """Test unknown question types are manual."""
    assert strategy_for("ESSAY_WITH_DIAGRAM") == GradingStrategy.MANUAL_ONLY
    assert strategy_for("multiple_choice") == GradingStrategy.MANUAL_ONLY


# ==================== Objective grader ====================

def test_exact_match_scores_full_marks():
    """Test exact match scoring."""
    score, feedback = grade_objective("B", "B", 5)
    assert score == 5.0
    assert feedback == "Correct answer!"


def test_mismatch_names_the_correct_answer():
    """Test mismatch feedback."""
    score, feedback = grade_objective("C", "B", 5)
    assert score == 0.0
    assert feedback == "Incorrect. The correct answer is: B"


def test_comparison_is_case_sensitive():
    """'true' does not match 'True'."""
    assert grade_objective("true", "True", 2)[0] == 0.0
    assert grade_objective("True", "True", 2)[0] == 2.0


def test_objective_grading_is_pure():
    """Test objective grading gives the same result twice."""
    first = grade_objective("A", "B", 3)
    for _ in range(5):
        assert grade_objective("A", "B", 3) == first


def test_boolean_key_matches_its_json_spelling():
    """Test boolean answer keys."""
    assert is_exact_match("true", True)
    assert not is_exact_match("True", True)


def test_multi_select_requires_exact_set():
    """Test multi-select set comparison."""
    key = ["A", "C"]
    assert is_exact_match(["C", "A"], key)
    assert not is_exact_match(["A"], key)
    assert not is_exact_match(["A", "C", "D"], key)
    assert not is_exact_match(["A", "A", "C"], key)
    assert not is_exact_match("A", key)


def test_multi_select_feedback_lists_options():
    """Test multi-select feedback."""
    score, feedback = grade_objective(["A"], ["A", "C"], 4)
    assert score == 0.0
    assert feedback == "Incorrect. The correct answer is: A, C"


def test_list_answer_never_matches_scalar_key():
    """Test list answers against scalar keys."""
    assert not is_exact_match(["B"], "B")


def test_objective_grader_result():
    """Test objective grader result fields."""
    question = GradableQuestion(id="q1", text="Pick", question_type="MULTIPLE_CHOICE",
                                marks=5, correct_answer="B")
    result = ObjectiveGrader().grade(question, "B")

    assert result.strategy == GradingStrategy.OBJECTIVE
    assert result.score == 5.0
    assert result.ai_score == 5.0
    assert not result.needs_review
    assert result.outcome == AnswerOutcome.CORRECT


# ==================== Aggregator ====================

@pytest.mark.parametrize("percentage,letter", [
    (100, "A"), (90, "A"), (89, "B"), (80, "B"), (79, "C"),
    (70, "C"), (69, "D"), (60, "D"), (59, "F"), (0, "F"),
])
def test_letter_grade_boundaries(percentage, letter):
    """Test letter grade boundaries."""
    assert letter_for(percentage) == letter


def test_percentage_rounds_half_up():
    """Test percentage rounding."""
    assert percentage_of(1, 8) == 13      # 12.5
    assert percentage_of(5, 8) == 63      # 62.5
    assert percentage_of(2, 3) == 67      # 66.67
    assert percentage_of(1, 3) == 33


def test_zero_max_score_is_a_configuration_error():
    """Test exams without marks."""
    with pytest.raises(ConfigurationError):
        percentage_of(0, 0)


def _result(qid, score, marks, needs_review=False):
    return QuestionResult(question_id=qid, strategy=GradingStrategy.OBJECTIVE, marks=marks,
                          score=score, feedback="x", needs_review=needs_review)


def test_summarize_end_to_end_example():
    """Test score summary of a mixed exam."""
    summary = ScoreAggregator().summarize([_result("q1", 5, 5), _result("q2", 4, 5)])

    assert summary.total_score == 9
    assert summary.max_score == 10
    assert summary.percentage == 90
    assert summary.letter == "A"


def test_summarize_matches_rounded_ratio():
    """Test summary percentage."""
    pairs = [(3, 7), (2.5, 4), (0, 2), (6, 6)]
    summary = ScoreAggregator().summarize_pairs(pairs)

    assert summary.total_score <= summary.max_score
    assert summary.percentage == percentage_of(11.5, 19)
    assert summary.percentage == 61


def test_summarize_empty_exam_raises():
    """Test summary of an empty exam."""
    with pytest.raises(ConfigurationError):
        ScoreAggregator().summarize([])


def test_override_validates_range():
    """Test override range validation."""
    aggregator = ScoreAggregator()
    assert aggregator.override(7, 10).letter == "C"
    with pytest.raises(ValidationError):
        aggregator.override(11, 10)
    with pytest.raises(ValidationError):
        aggregator.override(-1, 10)
