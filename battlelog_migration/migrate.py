"""Migration orchestrator: legacy documents -> relational store.

Usage:
    store = RecordStore()
    report = migrate_legacy_data(store, LocalSource(records), dry_run=True)
    print(report.to_dict())
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from battlelog_migration.clients.record_store import RecordStore
from battlelog_migration.errors import SourceFormatError
from battlelog_migration.import_engine import JSON_LINE_OFFSET, BatchImporter
from battlelog_migration.models import (
    RECORD_TYPES,
    DataSource,
    ImportResult,
    LocalSource,
    MigrationReport,
    RemoteSource,
)
from battlelog_migration.transform.normalize import OWNED_RECORD_TYPES
from battlelog_migration.transform.validate import LEGACY_RULES
from battlelog_migration.utils.pipeline_logger import PipelineLogger, timed_operation
from battlelog_migration.utils.progress import ProgressObserver, as_observer

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def load_source(source: DataSource) -> dict[str, list]:
    """Materialize every record type of a data source.

    Remote documents are all read before anything is returned, so a
    missing or malformed document fails the run before any write.

    Raises:
        MissingDocumentError: If a remote document does not exist
        ObjectStoreError: If a remote read failed after all retries
        SourceFormatError: If a document is not a JSON array
    """
    if isinstance(source, LocalSource):
        loaded = {t: source.records.get(t) or [] for t in RECORD_TYPES}
    elif isinstance(source, RemoteSource):
        loaded = {
            t: source.store.read_json(source.document_names[t]) for t in RECORD_TYPES
        }
    else:
        raise TypeError(f"Unsupported data source: {type(source).__name__}")

    for record_type, records in loaded.items():
        if not isinstance(records, list):
            raise SourceFormatError(
                f"{record_type} source must be a JSON array, got {type(records).__name__}"
            )

    return loaded


class MigrationOrchestrator:
    """Run the batch importer over the three legacy record types in order."""

    def __init__(self, store: RecordStore, importer: Optional[BatchImporter] = None):
        self.store = store
        self.importer = importer or BatchImporter(store)

    def run(
        self,
        source: DataSource,
        *,
        dry_run: bool = False,
        user_id: Optional[str] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        observer=None,
        id_generator: Optional[Callable[[int], str]] = None,
    ) -> MigrationReport:
        """Migrate every record type from a data source.

        Args:
            source: LocalSource or RemoteSource
            dry_run: Validate and count without writing
            user_id: Owner for battle logs and my decks
            batch_size: Records per progress event
            observer: ProgressObserver, plain callback, or None to log only
            id_generator: Generator for records without an id

        Returns:
            MigrationReport with one ImportResult per record type

        Raises:
            MigrationError: On a missing or malformed source, or exhausted retries
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")

        progress = as_observer(observer)
        run_id = uuid.uuid4().hex[:12]
        report = MigrationReport(dry_run=dry_run)

        logger.info(
            "Starting migration",
            extra={"run_id": run_id, "dry_run": dry_run, "source": type(source).__name__},
        )

        try:
            with timed_operation("migration", logger, run_id=run_id, dry_run=dry_run) as timer:
                loaded = load_source(source)
                for record_type in RECORD_TYPES:
                    report.results[record_type] = self._migrate_type(
                        record_type,
                        loaded[record_type],
                        run_id=run_id,
                        dry_run=dry_run,
                        user_id=user_id,
                        batch_size=batch_size,
                        progress=progress,
                        id_generator=id_generator,
                    )
        except Exception as e:
            logger.error(f"Migration failed: {e}", extra={"run_id": run_id}, exc_info=True)
            progress.on_progress(f"Migration failed: {e}")
            raise

        report.total_time_ms = timer.duration_ms
        report.completed_at = datetime.now(timezone.utc).isoformat()
        progress.on_progress(f"Migration completed in {report.total_time_ms}ms")

        logger.info(
            f"Migration complete in {report.total_time_ms}ms",
            extra={"run_id": run_id, **report.to_dict()},
        )
        return report

    def _migrate_type(
        self,
        record_type: str,
        records: list,
        *,
        run_id: str,
        dry_run: bool,
        user_id: Optional[str],
        batch_size: int,
        progress: ProgressObserver,
        id_generator: Optional[Callable[[int], str]],
    ) -> ImportResult:
        plog = PipelineLogger(record_type, run_id)
        plog.start("migrate", row_count=len(records))
        progress.on_progress(f"Migrating {record_type}...")

        def on_batch(processed: int, total: int) -> None:
            plog.batch(processed, total)
            progress.on_progress(f"{record_type}: processed {processed}/{total}")

        try:
            result = self.importer.import_records(
                records,
                record_type,
                rules=LEGACY_RULES[record_type],
                line_offset=JSON_LINE_OFFSET,
                dry_run=dry_run,
                user_id=user_id if record_type in OWNED_RECORD_TYPES else None,
                id_generator=id_generator,
                batch_size=batch_size,
                on_batch=on_batch,
            )
        except Exception as e:
            plog.error("migrate", e)
            raise

        plog.success(
            "migrate",
            row_count=result.imported,
            extra={"skipped": result.skipped, "errors": result.error_count},
        )
        logger.debug(f"{record_type} migration metrics", extra=plog.get_metrics())
        progress.on_progress(
            f"{record_type}: {result.imported} imported, {result.skipped} skipped"
        )
        return result


def migrate_legacy_data(
    store: RecordStore,
    source: DataSource,
    *,
    dry_run: bool = False,
    user_id: Optional[str] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    observer=None,
    id_generator: Optional[Callable[[int], str]] = None,
) -> MigrationReport:
    """Run one migration with a fresh orchestrator."""
    return MigrationOrchestrator(store).run(
        source,
        dry_run=dry_run,
        user_id=user_id,
        batch_size=batch_size,
        observer=observer,
        id_generator=id_generator,
    )
