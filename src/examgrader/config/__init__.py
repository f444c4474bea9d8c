"""
Configuration module for the exam grading service.

Provides settings, constants, prompt templates, and logging configuration.
"""

from examgrader.config.settings import get_settings, reload_settings, Settings
from examgrader.config.logging_config import setup_structured_logging

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'setup_structured_logging',
]
