#!/usr/bin/env python3
"""
Lost & Found Import CLI
=======================

Run the import pipeline on local files and manage saved review drafts.

Usage:
------
# Normalize a CSV export into item records
lostfound process zguby.csv --output zguby.json

# Score normalized records against the CSV
lostfound validate zguby.csv zguby.json

# Normalize + validate, and keep the result as a review draft
lostfound full zguby.csv --save-draft

# Serve the HTTP API
lostfound serve --port 3000

# Saved drafts
lostfound drafts list
lostfound drafts show zguby
lostfound drafts discard zguby

Notes:
------
- OPENAI_API_KEY must be set (environment or lostfound/.env) for
  process, validate and full
- Drafts live in the store configured by STORAGE_URL
"""

import argparse
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Any, List, NoReturn, Optional

from lostfound.database import get_engine
from lostfound.drafts import DraftRepository
from lostfound.errors import IngestionError
from lostfound.llm_client import get_default_provider
from lostfound.log_config import configure_logging
from lostfound.pipeline import run_action
from lostfound.review import ReviewSession, compliance_label, compliance_percentage, display_value
from lostfound.schema import RecordEvaluation
from lostfound.settings import get_settings
from lostfound.storage import SqlKeyValueStore

logger = logging.getLogger(__name__)


def open_repository() -> DraftRepository:
    """Draft repository on the configured SQL store"""
    return DraftRepository(SqlKeyValueStore(get_engine()))


def fail(message: str) -> NoReturn:
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        fail(f"cannot read {path}: {exc}")


def write_output(payload: Any, output: Optional[str]) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"Written to {output}")
    else:
        print(text)


# ============================================
# PIPELINE COMMANDS
# ============================================

def run_pipeline(action: str, csv_path: str, json_path: Optional[str] = None,
                 output: Optional[str] = None, save_draft: bool = False) -> None:
    settings = get_settings()
    csv_content = read_text(csv_path)
    json_content = read_text(json_path) if json_path else None

    try:
        provider = get_default_provider(settings)
        payload = run_action(provider, action, csv_content, json_content,
                             delimiter=settings.CSV_DELIMITER)
    except IngestionError as exc:
        fail(str(exc))

    write_output(payload, output)

    if save_draft:
        records = [RecordEvaluation.from_dict(r) for r in payload["validationResults"]]
        path = Path(csv_path)
        file_type = mimetypes.guess_type(path.name)[0] or "text/csv"
        session = ReviewSession.start(
            open_repository(), path.name, records,
            file_content=path.read_bytes(), file_type=file_type,
        )
        print(f"Draft '{session.display_name}' saved with {len(records)} record(s)")


# ============================================
# DRAFT COMMANDS
# ============================================

def list_drafts() -> None:
    drafts = open_repository().get_drafts()
    if not drafts:
        print("No saved drafts.")
        return

    print(f"\n{'Draft':<30} {'Records':>8} {'Accepted':>9}  Last modified")
    print("-" * 75)
    for draft in drafts:
        print(f"{draft.display_name:<30} {len(draft.records):>8} "
              f"{len(draft.accepted_indexes):>9}  {draft.last_modified}")
    print(f"\nTotal: {len(drafts)} draft(s)")


def show_draft(name: str) -> None:
    session = ReviewSession.open(open_repository(), name)
    if session is None:
        fail(f"no draft named '{name}'")

    print(f"\nDraft: {session.display_name} ({len(session.records)} records, "
          f"{session.accepted_count} accepted)")
    print("-" * 75)
    for record in session.visible_records():
        score = record.overall_score
        marker = "*" if record.index in session.accepted else " "
        print(f"{marker} {record.index:>4}  {compliance_percentage(score):>3}% "
              f"{compliance_label(score):<13} {display_value(record, 'name')}")


def discard_draft(name: str) -> None:
    session = ReviewSession.open(open_repository(), name)
    if session is None:
        fail(f"no draft named '{name}'")
    session.discard()
    print(f"Draft '{session.display_name}' discarded")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lostfound",
        description="Lost & Found Import CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  lostfound process zguby.csv
  lostfound validate zguby.csv zguby.json --output results.json
  lostfound full zguby.csv --save-draft
  lostfound drafts show zguby
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    process_parser = subparsers.add_parser("process", help="Normalize a CSV file")
    process_parser.add_argument("csv", help="CSV file to normalize")
    process_parser.add_argument("--output", "-o", help="Write JSON here instead of stdout")

    validate_parser = subparsers.add_parser("validate", help="Validate records against a CSV file")
    validate_parser.add_argument("csv", help="Original CSV file")
    validate_parser.add_argument("json", help="Normalized records (array or {\"items\": [...]})")
    validate_parser.add_argument("--output", "-o", help="Write JSON here instead of stdout")

    full_parser = subparsers.add_parser("full", help="Normalize then validate a CSV file")
    full_parser.add_argument("csv", help="CSV file to import")
    full_parser.add_argument("--output", "-o", help="Write JSON here instead of stdout")
    full_parser.add_argument("--save-draft", action="store_true",
                             help="Keep the validation results as a review draft")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (default: HOST setting)")
    serve_parser.add_argument("--port", type=int, help="Port (default: PORT setting)")

    drafts_parser = subparsers.add_parser("drafts", help="Manage saved review drafts")
    drafts_sub = drafts_parser.add_subparsers(dest="drafts_command", help="Draft commands")
    drafts_sub.add_parser("list", help="List saved drafts")
    show_parser = drafts_sub.add_parser("show", help="Show the records of a draft")
    show_parser.add_argument("name", help="File name, with or without extension")
    discard_parser = drafts_sub.add_parser("discard", help="Delete a draft")
    discard_parser.add_argument("name", help="File name, with or without extension")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    if args.command in ["process", "validate", "full"]:
        run_pipeline(
            args.command,
            args.csv,
            json_path=getattr(args, "json", None),
            output=args.output,
            save_draft=getattr(args, "save_draft", False),
        )
    elif args.command == "serve":
        from lostfound.main import run
        run(host=args.host, port=args.port)
    elif args.command == "drafts":
        if args.drafts_command == "list":
            list_drafts()
        elif args.drafts_command == "show":
            show_draft(args.name)
        elif args.drafts_command == "discard":
            discard_draft(args.name)
        else:
            parser.parse_args(["drafts", "--help"])


if __name__ == "__main__":
    main()
