"""
CSV and JSON output for parsed messages.
"""

import csv
import json
from pathlib import Path
from typing import List, TextIO

from .models import ParsedExpense

FIELDNAMES = ["date", "category", "purpose", "place", "amount", "description"]


def write_csv(rows: List[ParsedExpense], out_csv: Path):
    """Write parsed messages to CSV file."""
    with Path(out_csv).open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=FIELDNAMES)
        w.writeheader()
        for r in rows:
            w.writerow(r.to_dict())


def write_json(rows: List[ParsedExpense], out: TextIO):
    """Write parsed messages as a JSON array."""
    json.dump([r.to_dict() for r in rows], out, ensure_ascii=False, indent=2)
    out.write("\n")


def format_row(row: ParsedExpense) -> str:
    """One-line human readable summary."""
    if row.is_deletion:
        return f"{row.date} | {row.category}"
    amount = f"{row.amount:,.2f}" if row.amount else "(no amount)"
    return f"{row.date} | {row.category} | {row.purpose} | {row.place} | {amount}"
