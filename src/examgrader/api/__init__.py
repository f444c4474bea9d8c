"""HTTP API for the exam grading service."""

from examgrader.api.app import create_app

__all__ = ['create_app']
