from datetime import date

import pytest

from expense_chat_parser.core.categorization import default_taxonomy
from expense_chat_parser.core.deletion import (
    DELETE_ALL,
    is_delete_command,
    parse_delete_command,
    select_for_deletion,
)
from expense_chat_parser.core.models import ParsedExpense

TODAY = date(2024, 5, 10)
LABELS = default_taxonomy().category_labels


def _expense(day: str, category: str, amount: float = 5.0) -> ParsedExpense:
    return ParsedExpense(
        date=day,
        category=category,
        purpose="Other",
        place="Other",
        amount=amount,
        description=f"{category} on {day}",
    )


def test_non_delete_message_is_not_a_directive() -> None:
    assert parse_delete_command("Had kimchi stew for lunch today for €8", TODAY, LABELS) is None
    assert not is_delete_command("Paid €1.5 for subway")


@pytest.mark.parametrize("word", ["delete", "remove", "clear", "erase", "Delete", "ERASE"])
def test_trigger_words(word: str) -> None:
    assert is_delete_command(f"{word} everything")


def test_delete_today() -> None:
    directive = parse_delete_command("delete today's data", TODAY, LABELS)
    assert directive.category == "DELETE_TODAY"
    assert directive.purpose == "DELETE_TODAY"
    assert directive.place == "DELETE_TODAY"
    assert directive.date == "2024-05-10"
    assert directive.amount == 0


def test_today_beats_all() -> None:
    directive = parse_delete_command("delete all of today's food", TODAY, LABELS)
    assert directive.category == "DELETE_TODAY"


def test_delete_yesterday() -> None:
    directive = parse_delete_command("delete yesterday's data", TODAY, LABELS)
    assert directive.category == "DELETE_YESTERDAY"
    assert directive.date == "2024-05-09"
    assert directive.description == "delete yesterday's data"


def test_delete_category() -> None:
    directive = parse_delete_command("delete food expenses", TODAY, LABELS)
    assert directive.category == "DELETE_Food"
    assert directive.deletion_target == "Food"
    assert directive.date == "2024-05-10"


def test_delete_category_follows_taxonomy_order() -> None:
    assert parse_delete_command("remove shopping", TODAY, LABELS).category == "DELETE_Shopping"
    assert parse_delete_command("clear other expenses", TODAY, LABELS).category == "DELETE_Other"


def test_delete_all_is_the_fallback() -> None:
    directive = parse_delete_command("Delete all data", TODAY, LABELS)
    assert directive.category == DELETE_ALL
    assert directive.is_deletion


def test_select_for_deletion_by_date_and_category() -> None:
    records = [
        _expense("2024-05-10", "Food"),
        _expense("2024-05-09", "Food"),
        _expense("2024-05-09", "Transportation"),
    ]
    yesterday = parse_delete_command("delete yesterday", TODAY, LABELS)
    assert select_for_deletion(records, yesterday) == records[1:]

    food = parse_delete_command("delete food", TODAY, LABELS)
    assert select_for_deletion(records, food) == records[:2]

    everything = parse_delete_command("delete all data", TODAY, LABELS)
    assert select_for_deletion(records, everything) == records


def test_select_for_deletion_accepts_dicts() -> None:
    rows = [{"date": "2024-05-10", "category": "Culture"}, {"date": "2024-05-01", "category": "Food"}]
    directive = parse_delete_command("erase culture", TODAY, LABELS)
    assert select_for_deletion(rows, directive) == rows[:1]


def test_select_for_deletion_rejects_expenses() -> None:
    with pytest.raises(ValueError):
        select_for_deletion([], _expense("2024-05-10", "Food"))
