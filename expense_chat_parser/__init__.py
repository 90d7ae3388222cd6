"""
Expense Chat Parser

Turns free-text expense messages ("Had kimchi stew for lunch today for €8")
into structured records, and deletion commands into deletion directives.
"""

__version__ = "1.0.0"
__author__ = "Expense Chat Parser Contributors"

from expense_chat_parser.core.models import ParsedExpense
from expense_chat_parser.core.processor import ExpenseParser, parse_expense

__all__ = ["ParsedExpense", "ExpenseParser", "parse_expense"]
