"""
Core Utilities Package

This package contains utility functions and helpers used throughout the application.

Modules:
    - time: Timestamp parsing and normalization utilities
"""

from core.utils.time import parse_timestamp, to_utc_datetime

__all__ = ["parse_timestamp", "to_utc_datetime"]
