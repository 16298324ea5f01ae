"""
Date utility functions for budget months.
Budget months are addressed as YYYY-MM strings; sheets as budgetYYYYMM.
"""

import re
from datetime import UTC, datetime

# YYYY-MM with a real month component (01-12)
MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
_MONTH_RE = re.compile(MONTH_PATTERN)


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Replaces deprecated datetime.utcnow() which is scheduled for removal in Python 3.14.
    """
    return datetime.now(UTC)


def current_month(now: datetime | None = None) -> str:
    """
    Format the month containing `now` as YYYY-MM.

    Args:
        now: Reference time (defaults to current UTC time)

    Returns:
        Month string, e.g. "2025-10"
    """
    if now is None:
        now = utcnow()
    return now.strftime("%Y-%m")


def is_valid_month(month: str) -> bool:
    """Check that a string is a YYYY-MM month."""
    return bool(_MONTH_RE.match(month))


def sheet_for_month(month: str) -> str:
    """
    Name of the budget spreadsheet holding a month's cells.

    Args:
        month: Month in YYYY-MM format

    Returns:
        Sheet name, e.g. "budget202510" for "2025-10"

    Raises:
        ValueError: If month is not YYYY-MM
    """
    if not is_valid_month(month):
        raise ValueError(f"Invalid month format: {month!r} (expected YYYY-MM)")
    return "budget" + month.replace("-", "")
