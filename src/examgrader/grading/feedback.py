"""
Holistic feedback for a graded attempt.

A deterministic summary is always produced. When enabled and a scoring
client is configured, a short AI narrative is requested as well; its
failure is logged and ignored.
"""

import asyncio
from collections import Counter
from typing import Optional, Sequence

from loguru import logger

from examgrader.ai.base_provider import ScoringClient
from examgrader.config.prompts import build_analysis_prompt
from examgrader.core.exceptions import ExternalServiceError
from examgrader.core.models import AnswerOutcome, QuestionResult, ScoreSummary
from examgrader.db.models import utcnow


def _encouragement(percentage: int) -> str:
    if percentage >= 90:
        return "Excellent work! Keep it up."
    if percentage >= 70:
        return "Good effort. Review the questions you missed to strengthen your understanding."
    if percentage >= 50:
        return "You are making progress. Focus on the topics where you lost marks."
    return "Keep practicing. Go through each question's feedback and ask for help where needed."


def build_overall_feedback(summary: ScoreSummary, results: Sequence[QuestionResult]) -> str:
    """Deterministic performance summary of an attempt."""
    counts = Counter(r.outcome for r in results)
    lines = [
        f"Score: {summary.total_score:g}/{summary.max_score:g} ({summary.percentage}%), grade {summary.letter}.",
        f"Correct: {counts[AnswerOutcome.CORRECT]}, partially correct: {counts[AnswerOutcome.PARTIAL]}, "
        f"incorrect: {counts[AnswerOutcome.INCORRECT]}.",
    ]
    if counts[AnswerOutcome.PENDING]:
        lines.append(f"{counts[AnswerOutcome.PENDING]} question(s) are awaiting manual review.")
    lines.append(_encouragement(summary.percentage))
    return " ".join(lines)


async def generate_ai_analysis(
    client: ScoringClient,
    summary: ScoreSummary,
    subject: Optional[str] = None,
    grade_level: Optional[str] = None,
    timeout_seconds: float = 20.0
) -> Optional[dict]:
    """
    Ask the scoring client for a holistic narrative.

    Returns:
        {"feedback": str, "generatedAt": iso timestamp}, or None when the
        client is unconfigured or the call fails
    """
    if not client.is_configured:
        return None

    prompt = build_analysis_prompt(
        total_score=summary.total_score,
        max_score=summary.max_score,
        percentage=summary.percentage,
        subject=subject,
        grade_level=grade_level,
    )
    try:
        text = await asyncio.wait_for(client.analyze(prompt), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(f"AI analysis timed out after {timeout_seconds}s via {client.name}")
        return None
    except ExternalServiceError as e:
        logger.warning(f"AI analysis unavailable via {client.name}: {e.__class__.__name__}")
        return None
    except Exception as e:
        logger.error(f"Unexpected AI analysis failure via {client.name}: {e.__class__.__name__}")
        return None

    return {"feedback": text, "generatedAt": utcnow().isoformat()}
