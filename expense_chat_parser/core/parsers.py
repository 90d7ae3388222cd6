"""
Parsers for extracting the amount and the date from an expense message.
"""

import re
import datetime as dt
from typing import Optional, Tuple

from .utils import (
    AMOUNT_PATTERN,
    MONTH_DAY_PATTERN,
    FULL_DATE_PATTERN,
    LAST_YEAR_MONTH_DAY_PATTERN,
    LAST_YEAR_MONTH_PATTERN,
    THIS_YEAR_MONTH_DAY_PATTERN,
    THIS_YEAR_MONTH_PATTERN,
    iso_date,
    normalize_amount,
)


def parse_amount(text: str) -> float:
    """
    Extract the expense amount from message text.

    Every "(currency symbol)(integer)(.d or .dd)" token is a candidate and the
    largest one wins, so "2 coffees for €7.50" gives 7.5. Comma thousands
    groups belong to the number ("₩12,000" is 12000); any other comma splits
    it. Returns 0.0 when the text has no number at all.
    """
    candidates = [normalize_amount(m.group(1)) for m in re.finditer(AMOUNT_PATTERN, text or "")]
    if not candidates:
        return 0.0
    return max(candidates)


def _year_relative(text: str, year: int, month_day_pat: str, month_pat: str) -> Optional[str]:
    m = re.search(month_day_pat, text)
    if m:
        return iso_date(year, int(m.group(1)), int(m.group(2)))
    m = re.search(month_pat, text)
    if m:
        return iso_date(year, int(m.group(1)), 1)
    return None


def match_date_rule(text: str, today: dt.date) -> Tuple[str, str]:
    """
    Resolve the date a message refers to.

    Checks run in a fixed order and the first hit wins:
    yesterday, tomorrow, today, last year, this year, M/D, YYYY/M/D.
    Falls back to ``today``.

    Returns:
        Tuple of (ISO date, name of the rule that matched)
    """
    t = (text or "").lower()
    one_day = dt.timedelta(days=1)

    if "yesterday" in t or "last day" in t:
        return (today - one_day).isoformat(), "yesterday"
    if "tomorrow" in t or "next day" in t:
        return (today + one_day).isoformat(), "tomorrow"
    if "today" in t or "this day" in t:
        return today.isoformat(), "today"

    if "last year" in t:
        year = today.year - 1
        resolved = _year_relative(t, year, LAST_YEAR_MONTH_DAY_PATTERN, LAST_YEAR_MONTH_PATTERN)
        return resolved or iso_date(year, 1, 1), "last year"

    if "this year" in t or "current year" in t:
        resolved = _year_relative(t, today.year, THIS_YEAR_MONTH_DAY_PATTERN, THIS_YEAR_MONTH_PATTERN)
        if resolved:
            return resolved, "this year"

    m = re.search(MONTH_DAY_PATTERN, t)
    if m:
        return iso_date(today.year, int(m.group(1)), int(m.group(2))), "month/day"

    m = re.search(FULL_DATE_PATTERN, t)
    if m:
        return iso_date(int(m.group(1)), int(m.group(2)), int(m.group(3))), "year/month/day"

    return today.isoformat(), "default"


def resolve_date(text: str, today: dt.date) -> str:
    """Resolve the ISO date a message refers to, relative to ``today``."""
    return match_date_rule(text, today)[0]
