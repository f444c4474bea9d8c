"""
Constants and configuration values for the exam grading service.

Defines thresholds, defaults, and system-wide constants.
"""

from typing import Final

# Database
DEFAULT_DATABASE_URL: Final[str] = "sqlite:///data/examgrader.db"

# Scoring service model configuration
DEFAULT_OPENAI_MODEL: Final[str] = "gpt-4o-mini"
MAX_TOKENS: Final[int] = 400
ANALYSIS_MAX_TOKENS: Final[int] = 200
TEMPERATURE: Final[float] = 0.3  # Lower temperature for consistent grading
ANALYSIS_TEMPERATURE: Final[float] = 0.7

# Scoring service retry / timeout policy
SCORING_TIMEOUT_SECONDS: Final[float] = 20.0
SCORING_CONNECT_TIMEOUT: Final[float] = 5.0
SCORING_MAX_ATTEMPTS: Final[int] = 2  # one retry on transient failure
SCORING_BACKOFF_SECONDS: Final[float] = 0.5
SCORING_MAX_BACKOFF_SECONDS: Final[float] = 4.0
SCORING_CONCURRENCY: Final[int] = 4

# Letter grade thresholds (percentage lower bounds, highest first)
LETTER_GRADE_THRESHOLDS: Final[tuple] = (
    (90, "A"),
    (80, "B"),
    (70, "C"),
    (60, "D"),
)
FAILING_LETTER: Final[str] = "F"

# Feedback strings
FEEDBACK_CORRECT: Final[str] = "Correct answer!"
FEEDBACK_INCORRECT_TEMPLATE: Final[str] = "Incorrect. The correct answer is: {correct}"
FEEDBACK_NO_ANSWER: Final[str] = "No answer provided"
FEEDBACK_PENDING_REVIEW: Final[str] = "Pending manual review"

# Student-facing message before publish
PENDING_REVIEW_MESSAGE: Final[str] = (
    "Your exam has been submitted successfully. Results will be available "
    "once your teacher reviews and publishes them."
)

# Results statistics
TREND_WINDOW: Final[int] = 5
TREND_THRESHOLD: Final[float] = 5.0

# Authentication
JWT_ALGORITHM: Final[str] = "HS256"
ACCESS_TOKEN_EXPIRE_HOURS: Final[int] = 24 * 7

# Storage
DATA_DIR: Final[str] = "data"
