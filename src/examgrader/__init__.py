"""Exam grading pipeline: objective and assisted grading with a manual publish gate."""

__version__ = "1.0.0"
