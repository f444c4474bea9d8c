"""
Score aggregation.

Sums per-question results, derives the integer percentage (half-up) and the
letter grade from fixed thresholds.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Sequence, Tuple

from examgrader.config.constants import LETTER_GRADE_THRESHOLDS, FAILING_LETTER
from examgrader.core.exceptions import ConfigurationError, ValidationError
from examgrader.core.models import QuestionResult, ScoreSummary


def percentage_of(total_score: float, max_score: float) -> int:
    """
    Percentage of max_score achieved, rounded half-up to an integer.

    Raises:
        ConfigurationError: If max_score is not positive
    """
    if max_score <= 0:
        raise ConfigurationError(
            "Cannot compute a percentage for an exam without marks",
            {'max_score': max_score}
        )
    ratio = Decimal(str(total_score)) * 100 / Decimal(str(max_score))
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def letter_for(percentage: int) -> str:
    """Letter grade for an integer percentage."""
    for threshold, letter in LETTER_GRADE_THRESHOLDS:
        if percentage >= threshold:
            return letter
    return FAILING_LETTER


class ScoreAggregator:
    """Turns per-question scores into a ScoreSummary."""

    def summarize_pairs(self, pairs: Iterable[Tuple[float, int]]) -> ScoreSummary:
        """
        Aggregate (final_score, marks) pairs.

        Args:
            pairs: One (final_score, marks) pair per question

        Returns:
            ScoreSummary with total, max, percentage and letter
        """
        total_score = 0.0
        max_score = 0.0
        for score, marks in pairs:
            total_score += score
            max_score += marks
        percentage = percentage_of(total_score, max_score)
        return ScoreSummary(
            total_score=total_score,
            max_score=max_score,
            percentage=percentage,
            letter=letter_for(percentage),
        )

    def summarize(self, results: Sequence[QuestionResult]) -> ScoreSummary:
        return self.summarize_pairs((r.score, r.marks) for r in results)

    def override(self, total_score: float, max_score: float) -> ScoreSummary:
        """Summary for a reviewer-entered total."""
        if total_score < 0 or total_score > max_score:
            raise ValidationError(
                f"Total score must be between 0 and {max_score:g}",
                {'total_score': total_score, 'max_score': max_score}
            )
        percentage = percentage_of(total_score, max_score)
        return ScoreSummary(
            total_score=total_score,
            max_score=max_score,
            percentage=percentage,
            letter=letter_for(percentage),
        )
