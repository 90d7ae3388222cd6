"""
Data models for parsed expense messages.
"""

from dataclasses import dataclass, asdict, replace
from typing import Optional

from .utils import DELETE_PREFIX


@dataclass(frozen=True)
class ParsedExpense:
    """
    Represents one parsed chat message.

    An expense carries taxonomy labels in category/purpose/place. A deletion
    directive carries the same DELETE_* sentinel in all three and amount 0.
    """
    date: str
    category: str
    purpose: str
    place: str
    amount: float
    description: str

    @property
    def is_deletion(self) -> bool:
        """True when this record is a deletion directive rather than an expense."""
        return self.category.startswith(DELETE_PREFIX)

    @property
    def deletion_target(self) -> Optional[str]:
        """Suffix of the DELETE_* sentinel (TODAY, YESTERDAY, ALL or a category), if any."""
        if not self.is_deletion:
            return None
        return self.category[len(DELETE_PREFIX):]

    def with_fields(self, **changes) -> "ParsedExpense":
        return replace(self, **changes)

    def to_dict(self):
        """Convert to dictionary."""
        return asdict(self)


def deletion_directive(sentinel: str, date: str, text: str) -> ParsedExpense:
    """Build a deletion directive carrying the sentinel in every label field."""
    return ParsedExpense(
        date=date,
        category=sentinel,
        purpose=sentinel,
        place=sentinel,
        amount=0.0,
        description=text,
    )
