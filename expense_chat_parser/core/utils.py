"""
Utility functions and constants for expense message parsing.
"""

import datetime as dt
from typing import Optional

# Pattern constants for parsing
AMOUNT_PATTERN = r"[€$£₩]?(\d{1,3}(?:,\d{3})+(?!\d)(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)"

# Month/day without a year: not part of a YYYY/M/D token
MONTH_DAY_PATTERN = r"(?<![\d/])(\d{1,2})/(\d{1,2})(?!/?\d)"
FULL_DATE_PATTERN = r"(\d{4})/(\d{1,2})/(\d{1,2})"

LAST_YEAR_MONTH_DAY_PATTERN = r"last year\s*(\d{1,2})/(\d{1,2})"
LAST_YEAR_MONTH_PATTERN = r"last year\s*(\d{1,2})"
THIS_YEAR_MONTH_DAY_PATTERN = r"(?:this year|current year)\s*(\d{1,2})/(\d{1,2})"
THIS_YEAR_MONTH_PATTERN = r"(?:this year|current year)\s*(\d{1,2})"

FALLBACK_LABEL = "Other"
DELETE_PREFIX = "DELETE_"


def normalize_amount(s: str) -> Optional[float]:
    """Normalize amount string to float."""
    if not s:
        return None
    s = s.replace(",", "").replace(" ", "")
    for symbol in "€$£₩":
        s = s.replace(symbol, "")
    try:
        return float(s)
    except ValueError:
        return None


def iso_date(year: int, month: int, day: int) -> str:
    """
    Format a year/month/day triple as YYYY-MM-DD.

    Values are written as given; no calendar validation happens here,
    so 2/31 comes out as "YYYY-02-31".
    """
    return f"{year:04d}-{month:02d}-{day:02d}"


def berlin_offset_hours(month: int) -> int:
    """
    Approximate UTC offset for Central European time by month.

    April through September count as summer time (UTC+2), every other
    month as winter time (UTC+1). Exact transition Sundays are ignored.
    """
    if 4 <= month <= 9:
        return 2
    return 1


def utc_now() -> dt.datetime:
    """Current wall-clock instant in UTC."""
    return dt.datetime.now(dt.timezone.utc)


def logical_now(instant: Optional[dt.datetime] = None) -> dt.datetime:
    """Shift a real-world instant into the parser's local time. Naive values are read as UTC."""
    instant = instant or utc_now()
    if instant.tzinfo is not None:
        instant = instant.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return instant + dt.timedelta(hours=berlin_offset_hours(instant.month))


def logical_today(instant: Optional[dt.datetime] = None) -> dt.date:
    """Calendar date of the logical now."""
    return logical_now(instant).date()
