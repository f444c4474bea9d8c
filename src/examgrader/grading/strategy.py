"""
Grading strategy table.

The single place that decides whether a question type can be graded
automatically. Adding a question type means adding a row here; graders
never inspect question types themselves.
"""

from typing import Dict, Union

from examgrader.core.models import QuestionType, GradingStrategy


STRATEGY_TABLE: Dict[QuestionType, GradingStrategy] = {
    QuestionType.MULTIPLE_CHOICE: GradingStrategy.OBJECTIVE,
    QuestionType.TRUE_FALSE: GradingStrategy.OBJECTIVE,
    QuestionType.SHORT_ANSWER: GradingStrategy.ASSISTED,
    QuestionType.LONG_ANSWER: GradingStrategy.ASSISTED,
    QuestionType.FILL_BLANKS: GradingStrategy.ASSISTED,
    QuestionType.MATCHING: GradingStrategy.MANUAL_ONLY,
}

# Every QuestionType member must have an explicit row.
_unmapped = set(QuestionType) - set(STRATEGY_TABLE)
if _unmapped:
    raise RuntimeError(f"Question types without a grading strategy: {sorted(t.value for t in _unmapped)}")


def strategy_for(question_type: Union[QuestionType, str]) -> GradingStrategy:
    """
    Select the grading strategy for a question type.

    Unknown type strings are routed to manual review.
    """
    if not isinstance(question_type, QuestionType):
        try:
            question_type = QuestionType(question_type)
        except ValueError:
            return GradingStrategy.MANUAL_ONLY
    return STRATEGY_TABLE[question_type]
