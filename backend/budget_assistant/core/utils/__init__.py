"""
Core utilities for the budget assistant.
"""

from .date_utils import (
    MONTH_PATTERN,
    current_month,
    is_valid_month,
    sheet_for_month,
    utcnow,
)

__all__ = [
    "MONTH_PATTERN",
    "current_month",
    "is_valid_month",
    "sheet_for_month",
    "utcnow",
]
