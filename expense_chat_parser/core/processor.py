"""
Main expense message parsing orchestration.
"""

import datetime as dt
from typing import Callable, Iterable, List, Optional

from .categorization import (
    Taxonomy,
    TaxonomyError,
    classify_all,
    classify_with_rules,
    default_taxonomy,
    rules_taxonomy,
)
from .config import get_settings
from .deletion import parse_delete_command
from .llm import augment_with_llm, augment_with_llm_async
from .models import ParsedExpense
from .parsers import match_date_rule, parse_amount
from .utils import logical_now, utc_now


def assemble(date: str, amount: float, category: str, place: str,
             purpose: str, text: str) -> ParsedExpense:
    """Merge the individual extraction results into one record."""
    return ParsedExpense(
        date=date,
        category=category,
        purpose=purpose,
        place=place,
        amount=amount,
        description=text,
    )


class ExpenseParser:
    """Turns chat messages into expense records or deletion directives."""

    def __init__(self, taxonomy: Optional[Taxonomy] = None,
                 use_llm: Optional[bool] = None,
                 llm_provider: Optional[str] = None,
                 llm_model: Optional[str] = None,
                 llm_timeout: Optional[float] = None,
                 clock: Optional[Callable[[], dt.datetime]] = None,
                 verbose: bool = False):
        """
        Initialize expense parser.

        Unset options come from the environment (see ``config.get_settings``).

        Args:
            taxonomy: Keyword tables (default: EXPENSE_PARSER_TAXONOMY or the packaged table)
            use_llm: Whether to run the LLM augmentation after rule-based parsing
            llm_provider: LLM provider to use ("openai", "anthropic", "azure-openai", "huggingface")
            llm_model: LLM model name (uses provider default if not specified)
            llm_timeout: Seconds before an LLM call is abandoned
            clock: Returns the current real-world instant (default: UTC wall clock)
            verbose: Whether to show verbose debugging output
        """
        settings = get_settings()
        self.use_dataset = True
        if taxonomy is not None:
            self.taxonomy = taxonomy
        else:
            try:
                self.taxonomy = default_taxonomy(settings.taxonomy_path)
            except TaxonomyError as e:
                print(f"[WARN] Taxonomy unavailable, using rule chains only: {e}")
                self.taxonomy = rules_taxonomy()
                self.use_dataset = False
        self.use_llm = settings.use_llm if use_llm is None else use_llm
        self.llm_provider = llm_provider or settings.llm_provider
        self.llm_model = llm_model or settings.llm_model
        self.llm_timeout = llm_timeout or settings.llm_timeout_secs
        self.clock = clock or utc_now
        self.verbose = verbose

    def _today(self, now: Optional[dt.datetime]) -> dt.date:
        return logical_now(now or self.clock()).date()

    def parse_with_dataset(self, text: str, today: dt.date) -> ParsedExpense:
        """Keyword-score the message against the taxonomy tables."""
        date, rule = match_date_rule(text, today)
        amount = parse_amount(text)
        scores = classify_all(text, self.taxonomy)
        category, category_score = scores["categories"]
        place, place_score = scores["places"]
        purpose, purpose_score = scores["purposes"]

        if self.verbose:
            print(f"  [DEBUG] Date: {date} (rule: {rule})")
            print(f"  [DEBUG] Amount: {amount if amount else '(none)'}")
            print(f"  [DEBUG] Category: {category} (score: {category_score})")
            print(f"  [DEBUG] Place: {place} (score: {place_score})")
            print(f"  [DEBUG] Purpose: {purpose} (score: {purpose_score})")

        return assemble(date, amount, category, place, purpose, text)

    def parse_with_rules(self, text: str, today: dt.date) -> ParsedExpense:
        """Classify the message with the fixed rule chains."""
        date, rule = match_date_rule(text, today)
        amount = parse_amount(text)
        labels = classify_with_rules(text)

        if self.verbose:
            print(f"  [DEBUG] Rule chain: {labels['categories']} / {labels['places']} / "
                  f"{labels['purposes']}, date {date} (rule: {rule})")

        return assemble(date, amount, labels["categories"], labels["places"],
                        labels["purposes"], text)

    def parse_base(self, text: str, now: Optional[dt.datetime] = None) -> ParsedExpense:
        """
        Parse a message without touching the network.

        Deletion commands short-circuit. Otherwise the taxonomy tables decide
        the labels; if the tables could not be loaded, or that path fails
        unexpectedly, the rule chains take over.
        """
        today = self._today(now)

        directive = parse_delete_command(text, today, self.taxonomy.category_labels)
        if directive:
            if self.verbose:
                print(f"  [DEBUG] Delete command: {directive.category} ({directive.date})")
            return directive

        if not self.use_dataset:
            return self.parse_with_rules(text, today)

        try:
            return self.parse_with_dataset(text, today)
        except Exception as e:
            if self.verbose:
                print(f"  [DEBUG] Dataset parsing failed, falling back to rules: {e}")
            return self.parse_with_rules(text, today)

    def parse(self, text: str, now: Optional[dt.datetime] = None) -> ParsedExpense:
        """Parse a message, then refine it with the LLM when enabled."""
        base = self.parse_base(text, now)
        if not self.use_llm or base.is_deletion:
            return base
        return augment_with_llm(
            text, base, self.taxonomy,
            provider=self.llm_provider,
            model=self.llm_model,
            timeout=self.llm_timeout,
            verbose=self.verbose,
        )

    async def parse_async(self, text: str, now: Optional[dt.datetime] = None) -> ParsedExpense:
        """Like :meth:`parse`, but awaits the LLM call instead of blocking on it."""
        base = self.parse_base(text, now)
        if not self.use_llm or base.is_deletion:
            return base
        return await augment_with_llm_async(
            text, base, self.taxonomy,
            provider=self.llm_provider,
            model=self.llm_model,
            timeout=self.llm_timeout,
            verbose=self.verbose,
        )

    def parse_many(self, lines: Iterable[str], now: Optional[dt.datetime] = None) -> List[ParsedExpense]:
        """Parse each non-blank line as its own message."""
        rows = []
        for line in lines:
            text = line.strip()
            if not text:
                continue
            if self.verbose:
                print(f"[INFO] Parsing: {text}")
            rows.append(self.parse(text, now))
        return rows


def parse_expense(text: str, now: Optional[dt.datetime] = None,
                  taxonomy: Optional[Taxonomy] = None) -> ParsedExpense:
    """Parse one message with rule-based parsing only."""
    return ExpenseParser(taxonomy=taxonomy, use_llm=False).parse(text, now)
