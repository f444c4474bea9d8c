"""
Objective grader for closed-form questions.

Case-sensitive exact matching, no external calls. Multi-select questions
(list-valued correct answers) use exact set matching without partial credit.
"""

import json
from typing import Any, Tuple

from examgrader.config.constants import FEEDBACK_CORRECT, FEEDBACK_INCORRECT_TEMPLATE
from examgrader.core.models import (
    AnswerPayload, GradableQuestion, GradingStrategy, QuestionResult,
)


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    # Non-string scalars are compared in their JSON spelling (true, 3, ...)
    return json.dumps(value)


def _describe(correct_answer: Any) -> str:
    if isinstance(correct_answer, list):
        return ", ".join(_as_text(item) for item in correct_answer)
    return _as_text(correct_answer)


def is_exact_match(answer: AnswerPayload, correct_answer: Any) -> bool:
    """Exact, case-sensitive comparison of a student answer with the key."""
    if isinstance(correct_answer, list):
        if not isinstance(answer, list):
            return False
        selected = [_as_text(a) for a in answer]
        expected = {_as_text(c) for c in correct_answer}
        return len(selected) == len(set(selected)) and set(selected) == expected
    if isinstance(answer, list) or answer is None or correct_answer is None:
        return False
    return answer == _as_text(correct_answer)


def grade_objective(answer: AnswerPayload, correct_answer: Any, marks: int) -> Tuple[float, str]:
    """
    Score an objective answer.

    Returns:
        (score, feedback): full marks and "Correct answer!" on a match,
        otherwise 0 and feedback naming the correct answer.
    """
    if is_exact_match(answer, correct_answer):
        return float(marks), FEEDBACK_CORRECT
    return 0.0, FEEDBACK_INCORRECT_TEMPLATE.format(correct=_describe(correct_answer))


class ObjectiveGrader:
    """Deterministic grader; always succeeds."""

    def grade(self, question: GradableQuestion, answer: AnswerPayload) -> QuestionResult:
        score, feedback = grade_objective(answer, question.correct_answer, question.marks)
        return QuestionResult(
            question_id=question.id,
            strategy=GradingStrategy.OBJECTIVE,
            marks=question.marks,
            score=score,
            feedback=feedback,
            ai_score=score,
        )
