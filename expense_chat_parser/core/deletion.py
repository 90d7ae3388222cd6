"""
Deletion command detection.

Messages such as "delete today's data" or "delete food expenses" are not
expenses. They turn into a directive whose labels all carry a DELETE_*
sentinel; the caller decides what to remove from its store.
"""

import datetime as dt
from typing import Iterable, List, Optional, Sequence, Union

from .models import ParsedExpense, deletion_directive
from .utils import DELETE_PREFIX, FALLBACK_LABEL

DELETE_KEYWORDS = ["delete", "remove", "clear", "erase", "delete today", "delete yesterday", "delete all"]

DELETE_TODAY = DELETE_PREFIX + "TODAY"
DELETE_YESTERDAY = DELETE_PREFIX + "YESTERDAY"
DELETE_ALL = DELETE_PREFIX + "ALL"


def is_delete_command(text: str) -> bool:
    t = (text or "").lower()
    return any(kw in t for kw in DELETE_KEYWORDS)


def parse_delete_command(text: str, today: dt.date,
                         category_labels: Sequence[str]) -> Optional[ParsedExpense]:
    """
    Turn a deletion command into a directive.

    Args:
        text: Raw message
        today: Logical today
        category_labels: Category names in taxonomy order; "Other" is tried last

    Returns:
        Deletion directive, or None when the message is not a deletion command
    """
    if not is_delete_command(text):
        return None

    t = text.lower()
    if "today" in t:
        return deletion_directive(DELETE_TODAY, today.isoformat(), text)
    if "yesterday" in t:
        return deletion_directive(DELETE_YESTERDAY, (today - dt.timedelta(days=1)).isoformat(), text)

    labels = list(category_labels)
    if FALLBACK_LABEL not in labels:
        labels.append(FALLBACK_LABEL)
    for category in labels:
        if category.lower() in t:
            return deletion_directive(DELETE_PREFIX + category, today.isoformat(), text)

    return deletion_directive(DELETE_ALL, today.isoformat(), text)


Record = Union[ParsedExpense, dict]


def _field(record: Record, name: str):
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name)


def select_for_deletion(records: Iterable[Record], directive: ParsedExpense) -> List[Record]:
    """
    Pick the stored records a deletion directive addresses.

    TODAY and YESTERDAY match on the directive's date, DELETE_<Category>
    matches on category, ALL takes everything.
    """
    if not directive.is_deletion:
        raise ValueError(f"Not a deletion directive: {directive.category}")

    target = directive.deletion_target
    records = list(records)
    if directive.category == DELETE_ALL:
        return records
    if directive.category in (DELETE_TODAY, DELETE_YESTERDAY):
        return [r for r in records if _field(r, "date") == directive.date]
    return [r for r in records if _field(r, "category") == target]
