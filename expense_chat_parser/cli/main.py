#!/usr/bin/env python3
"""
Main CLI entrypoint for the expense chat parser.
"""

import argparse
import datetime as dt
import sys
from pathlib import Path

from expense_chat_parser.core.categorization import TaxonomyError, load_taxonomy
from expense_chat_parser.core.config import LLM_PROVIDERS, get_settings
from expense_chat_parser.core.processor import ExpenseParser
from expense_chat_parser.core.reporting import format_row, write_csv, write_json


def _parse_instant(value: str) -> dt.datetime:
    try:
        instant = dt.datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO datetime: {value!r}")
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=dt.timezone.utc)
    return instant


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="expense-parse",
        description="Turn free-text expense messages into structured records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse one message
  expense-parse "Had kimchi stew for lunch today for €8"

  # Parse a file with one message per line into CSV
  expense-parse --file messages.txt --csv expenses.csv

  # Pin the clock and refine with an LLM
  expense-parse --now 2024-05-10T08:00:00 --llm --llm-provider anthropic "Paid €1.5 for subway"
        """
    )
    parser.add_argument("messages", nargs="*",
                        help="Messages to parse (default: read --file or stdin)")
    parser.add_argument("--file",
                        help="Text file with one message per line")
    parser.add_argument("--taxonomy",
                        help="Keyword table JSON (default: EXPENSE_PARSER_TAXONOMY or the packaged table)")
    parser.add_argument("--now", type=_parse_instant,
                        help="Current instant as ISO datetime, UTC if no offset (default: wall clock)")
    parser.add_argument("--csv",
                        help="Write results to this CSV file")
    parser.add_argument("--json", action="store_true",
                        help="Print results as JSON instead of one line per message")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show detailed parsing information for debugging")

    # LLM configuration
    llm_group = parser.add_mutually_exclusive_group()
    llm_group.add_argument("--llm", dest="use_llm", action="store_true", default=None,
                           help="Refine results with an LLM (or EXPENSE_PARSER_USE_LLM=1)")
    llm_group.add_argument("--no-llm", dest="use_llm", action="store_false",
                           help="Disable LLM augmentation, use only rule-based parsing")
    parser.add_argument("--llm-provider", choices=LLM_PROVIDERS,
                        help="LLM provider to use (default: openai, or LLM_PROVIDER env var)")
    parser.add_argument("--llm-model",
                        help="LLM model to use (uses provider default if not specified, or LLM_MODEL env var)")
    parser.add_argument("--llm-timeout", type=float,
                        help="Seconds before an LLM call is abandoned (or LLM_TIMEOUT_SECS)")
    parser.set_defaults(use_llm=None)
    return parser


def main(argv=None):
    """Main CLI entrypoint."""
    args = build_arg_parser().parse_args(argv)
    settings = get_settings()

    llm_provider = args.llm_provider or settings.llm_provider
    if llm_provider not in LLM_PROVIDERS:
        print(f"[ERROR] Invalid LLM provider: {llm_provider}")
        print(f"[ERROR] Must be one of: {', '.join(LLM_PROVIDERS)}")
        return 1

    taxonomy = None
    if args.taxonomy:
        try:
            taxonomy = load_taxonomy(Path(args.taxonomy))
        except TaxonomyError as e:
            print(f"[ERROR] {e}")
            return 1

    if args.messages:
        messages = args.messages
    elif args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"[ERROR] File not found: {path}")
            return 1
        messages = path.read_text(encoding="utf-8").splitlines()
    else:
        messages = sys.stdin.read().splitlines()

    parser = ExpenseParser(
        taxonomy=taxonomy,
        use_llm=args.use_llm,
        llm_provider=llm_provider,
        llm_model=args.llm_model,
        llm_timeout=args.llm_timeout,
        verbose=args.verbose,
    )
    if args.verbose and parser.use_llm:
        print(f"[INFO] LLM: {parser.llm_provider} ({parser.llm_model or 'default'})")

    rows = parser.parse_many(messages, args.now)
    if not rows:
        print("[WARN] No messages to parse.")
        return 0

    if args.json:
        write_json(rows, sys.stdout)
    else:
        for row in rows:
            print(format_row(row))

    if args.csv:
        write_csv(rows, Path(args.csv))
        if not args.json:
            print(f"[OK] Wrote {args.csv}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
