"""
Grading pipeline components.

Strategy table, objective and assisted graders, score aggregation and
holistic feedback.
"""

from examgrader.grading.strategy import STRATEGY_TABLE, strategy_for
from examgrader.grading.objective import ObjectiveGrader, grade_objective, is_exact_match
from examgrader.grading.assisted import AssistedGrader, RetryPolicy, clamp_score, fallback_result
from examgrader.grading.aggregator import ScoreAggregator, letter_for, percentage_of
from examgrader.grading.feedback import build_overall_feedback, generate_ai_analysis

__all__ = [
    'STRATEGY_TABLE',
    'strategy_for',
    'ObjectiveGrader',
    'grade_objective',
    'is_exact_match',
    'AssistedGrader',
    'RetryPolicy',
    'clamp_score',
    'fallback_result',
    'ScoreAggregator',
    'letter_for',
    'percentage_of',
    'build_overall_feedback',
    'generate_ai_analysis',
]
