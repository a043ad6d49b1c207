"""Utility functions and classes."""

from .logging import ProgressLogger, setup_logging
from .stats import RunStats
from .text_processing import extract_domain, normalize_text

__all__ = [
    "ProgressLogger",
    "RunStats",
    "extract_domain",
    "normalize_text",
    "setup_logging",
]
