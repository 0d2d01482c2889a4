"""Rollback controller: delete migrated rows table by table."""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from battlelog_migration.clients.record_store import RecordStore
from battlelog_migration.errors import RecordStoreError
from battlelog_migration.models import RollbackResult

logger = logging.getLogger(__name__)

# Dependents first, reference data last
ROLLBACK_ORDER = ("battle_logs", "my_decks", "deck_master")


def resolve_tables(tables: Optional[Iterable[str]] = None) -> list[str]:
    """Return the requested tables in rollback order.

    Raises:
        ValueError: If any name is not a known table
    """
    if tables is None:
        return list(ROLLBACK_ORDER)

    requested = set(tables)
    unknown = requested - set(ROLLBACK_ORDER)
    if unknown:
        raise ValueError(f"Unknown tables: {', '.join(sorted(unknown))}")
    return [t for t in ROLLBACK_ORDER if t in requested]


class RollbackController:
    """Delete every row of the target tables.

    Deletes are not wrapped in one transaction: when a table fails, tables
    already cleared stay cleared and the result is marked ``partial``.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    def rollback(self, tables: Optional[Iterable[str]] = None) -> RollbackResult:
        """Delete all rows of ``tables`` (default: every table).

        Args:
            tables: Subset of table names, in any order

        Returns:
            RollbackResult with per-table deleted counts
        """
        ordered = resolve_tables(tables)
        result = RollbackResult()
        cleared = 0

        logger.info("Starting rollback", extra={"tables": ordered})

        for table_name in ordered:
            try:
                result.deleted[table_name] = self.store.delete_all(table_name)
            except RecordStoreError as e:
                result.error = str(e)
                result.status = "partial" if cleared else "failed"
                result.completed_at = datetime.now(timezone.utc).isoformat()
                logger.error(
                    f"Rollback stopped at {table_name}: {e}",
                    extra={"table": table_name, "status": result.status},
                )
                return result

            cleared += 1
            logger.info(
                f"Deleted {result.deleted[table_name]} rows from {table_name}",
                extra={"table": table_name, "deleted": result.deleted[table_name]},
            )

        result.success = True
        result.status = "completed"
        result.completed_at = datetime.now(timezone.utc).isoformat()
        logger.info("Rollback complete", extra=result.to_dict())
        return result


def rollback_migration(store: RecordStore) -> RollbackResult:
    """Delete all migrated rows from every table."""
    return RollbackController(store).rollback()


def rollback_tables(store: RecordStore, tables: Iterable[str]) -> RollbackResult:
    """Delete all rows from the named tables only."""
    return RollbackController(store).rollback(tables)
