"""Command-line entrypoint for migrations, imports and rollbacks.

Usage:
    battlelog-migrate migrate --source-dir ./legacy --dry-run
    battlelog-migrate migrate --remote --user-id u_123 --yes
    battlelog-migrate import logs.csv --format csv --type battle_logs
    battlelog-migrate rollback --tables battle_logs --yes
    battlelog-migrate upload-legacy ./legacy
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from battlelog_migration.clients import LEGACY_DOCUMENTS, ObjectStoreClient, RecordStore
from battlelog_migration.errors import MigrationError
from battlelog_migration.import_engine import BatchImporter
from battlelog_migration.migrate import DEFAULT_BATCH_SIZE, MigrationOrchestrator
from battlelog_migration.models import RECORD_TYPES, LocalSource, RemoteSource
from battlelog_migration.rollback import ROLLBACK_ORDER, RollbackController
from battlelog_migration.utils import LoggingProgressObserver, setup_logging

logger = logging.getLogger(__name__)


def load_local_source(directory: str) -> LocalSource:
    """Read the legacy JSON files from a local directory.

    Files are named after the legacy documents (``deck-master.json`` ...).
    A missing file migrates as an empty list.
    """
    base = Path(directory)
    records = {}

    for record_type, name in LEGACY_DOCUMENTS.items():
        path = base / Path(name).name
        if not path.exists():
            logger.warning(f"{path} not found, migrating no {record_type}")
            continue
        with open(path, "r", encoding="utf-8") as f:
            records[record_type] = json.load(f)

    return LocalSource(records)


def print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ============================================
# Commands
# ============================================

def cmd_migrate(args: argparse.Namespace, store: RecordStore) -> int:
    if not args.dry_run and not args.yes:
        print_json({"error": "Committed migration requires --yes (or use --dry-run)"})
        return 1

    if args.remote:
        source = RemoteSource(ObjectStoreClient())
    else:
        source = load_local_source(args.source_dir)

    store.create_schema()
    report = MigrationOrchestrator(store).run(
        source,
        dry_run=args.dry_run,
        user_id=args.user_id,
        batch_size=args.batch_size,
        observer=LoggingProgressObserver(),
    )
    print_json(report.to_dict())
    return 0


def cmd_import(args: argparse.Namespace, store: RecordStore) -> int:
    payload = Path(args.file).read_text(encoding="utf-8")
    fmt = args.format or ("csv" if args.file.lower().endswith(".csv") else "json")

    store.create_schema()
    result = BatchImporter(store).import_payload(
        payload,
        fmt,
        args.type,
        dry_run=args.dry_run,
        user_id=args.user_id,
    )
    print_json(result.to_dict())
    return 0


def cmd_rollback(args: argparse.Namespace, store: RecordStore) -> int:
    if not args.yes:
        print_json({"error": "Rollback requires --yes"})
        return 1

    result = RollbackController(store).rollback(args.tables)
    print_json(result.to_dict())
    return 0 if result.success else 1


def cmd_upload_legacy(args: argparse.Namespace, store: RecordStore) -> int:
    uploaded = ObjectStoreClient().upload_legacy_documents(args.directory)
    print_json({"uploaded": uploaded})
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="battlelog-migrate",
        description="Migrate legacy battle-log data and import JSON/CSV payloads",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy database URL (default: $DATABASE_URL)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON lines",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", help="Migrate legacy documents")
    source = migrate.add_mutually_exclusive_group(required=True)
    source.add_argument("--source-dir", help="Directory holding the legacy JSON files")
    source.add_argument("--remote", action="store_true", help="Read from the object store")
    migrate.add_argument("--dry-run", action="store_true", help="Validate and count only")
    migrate.add_argument("--user-id", default=None, help="Owner for battle logs and my decks")
    migrate.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Records per progress event (default: {DEFAULT_BATCH_SIZE})",
    )
    migrate.add_argument("--yes", action="store_true", help="Confirm a committed run")
    migrate.set_defaults(func=cmd_migrate)

    imp = subparsers.add_parser("import", help="Import a JSON or CSV file")
    imp.add_argument("file", help="Payload file")
    imp.add_argument("--format", choices=["json", "csv"], default=None,
                     help="Payload format (default: from file extension)")
    imp.add_argument("--type", choices=list(RECORD_TYPES), default="battle_logs",
                     help="Record type (default: battle_logs)")
    imp.add_argument("--dry-run", action="store_true", help="Validate and count only")
    imp.add_argument("--user-id", default=None, help="Owner for battle logs and my decks")
    imp.set_defaults(func=cmd_import)

    rollback = subparsers.add_parser("rollback", help="Delete migrated rows")
    rollback.add_argument("--tables", nargs="+", choices=list(ROLLBACK_ORDER), default=None,
                          help="Tables to clear (default: all)")
    rollback.add_argument("--yes", action="store_true", help="Confirm the rollback")
    rollback.set_defaults(func=cmd_rollback)

    upload = subparsers.add_parser("upload-legacy", help="Upload legacy files to the object store")
    upload.add_argument("directory", help="Directory holding the legacy JSON files")
    upload.set_defaults(func=cmd_upload_legacy)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entrypoint."""
    load_dotenv()

    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, json_format=args.json_logs)

    try:
        store = RecordStore(args.database_url)
        return args.func(args, store)
    except (MigrationError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print_json({"error": str(e)})
        return 1


if __name__ == "__main__":
    sys.exit(main())
