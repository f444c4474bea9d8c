"""
Prompt templates for the assisted scoring service.

The scoring prompt pins the response to a fixed JSON schema:
{"score": number, "feedback": string}.
"""

import json
from typing import Any, Optional


SCORING_SYSTEM_PROMPT = (
    "You are a helpful teacher grading student exam answers. "
    "Be fair and encouraging in your feedback."
)

ANALYSIS_SYSTEM_PROMPT = "You are an encouraging teacher providing constructive feedback."


SCORING_PROMPT_TEMPLATE = """Grade the following student answer.

Question: {question}
Correct Answer/Expected Answer: {reference_answer}
Student Answer: {student_answer}
Maximum Marks: {max_marks}
{context_block}
Provide:
1. A score between 0 and {max_marks}
2. Brief, constructive feedback (2-3 sentences)

Consider partial credit for partially correct answers.

Respond in JSON format exactly like this:
{{
  "score": number,
  "feedback": "string"
}}"""


ANALYSIS_PROMPT_TEMPLATE = """Analyze the exam performance:
Score: {total_score}/{max_score} ({percentage}%)
Subject: {subject}
Grade Level: {grade_level}

Provide a brief analysis including:
1. Overall performance assessment
2. Key strengths (if any)
3. Areas for improvement
4. Encouragement or next steps

Keep it concise and constructive (3-4 sentences)."""


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def build_scoring_prompt(
    question: str,
    reference_answer: Any,
    student_answer: Any,
    max_marks: int,
    context: Optional[dict] = None
) -> str:
    """
    Build the user prompt for scoring one subjective answer.

    Args:
        question: Question text
        reference_answer: Reference answer (string or structured)
        student_answer: Student's raw answer
        max_marks: Upper bound for the score
        context: Optional difficulty / grade level hints

    Returns:
        Prompt text
    """
    context_block = ""
    if context:
        lines = [f"{key.replace('_', ' ').title()}: {value}" for key, value in context.items() if value is not None]
        if lines:
            context_block = "\n".join(lines) + "\n"

    return SCORING_PROMPT_TEMPLATE.format(
        question=question,
        reference_answer=_render(reference_answer),
        student_answer=_render(student_answer),
        max_marks=max_marks,
        context_block=context_block,
    )


def build_analysis_prompt(
    total_score: float,
    max_score: float,
    percentage: int,
    subject: Optional[str] = None,
    grade_level: Optional[str] = None
) -> str:
    """Build the prompt for the holistic narrative of an attempt."""
    return ANALYSIS_PROMPT_TEMPLATE.format(
        total_score=f"{total_score:g}",
        max_score=f"{max_score:g}",
        percentage=percentage,
        subject=subject or "Not specified",
        grade_level=grade_level or "Not specified",
    )
