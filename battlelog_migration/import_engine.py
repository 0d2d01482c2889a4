"""Batch import engine: parsed records -> deduplicated store writes.

Usage:
    store = RecordStore("sqlite:///battlelog.db")
    importer = BatchImporter(store)
    result = importer.import_json(payload)
    print(result.to_dict())
"""

import logging
import time
from typing import Callable, Optional, Sequence

from battlelog_migration.clients.record_store import RecordStore
from battlelog_migration.errors import RecordStoreError
from battlelog_migration.models import ImportErrorDetail, ImportResult
from battlelog_migration.transform.normalize import normalize_record
from battlelog_migration.transform.parse import parse_csv, parse_json
from battlelog_migration.transform.validate import IMPORT_RULES, FieldRule, validate_record

logger = logging.getLogger(__name__)

# Ids per existence lookup; conservatively below the store's parameter ceiling
EXISTING_ID_CHUNK_SIZE = 100

ID_PREFIX = "log_import"

# Line offsets: structured lists are 1-based, delimited text also skips the header
JSON_LINE_OFFSET = 1
CSV_LINE_OFFSET = 2


class IdGenerator:
    """Generate ``<prefix>_<epoch-ms>_<index>`` ids.

    The input index keeps ids unique within one run even when the clock
    does not advance between records.
    """

    def __init__(self, prefix: str = ID_PREFIX, clock: Callable[[], float] = time.time):
        self.prefix = prefix
        self.clock = clock

    def __call__(self, index: int) -> str:
        return f"{self.prefix}_{int(self.clock() * 1000)}_{index}"


def chunked(items: Sequence, size: int):
    """Yield successive ``size``-long slices of ``items``."""
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    for i in range(0, len(items), size):
        yield items[i:i + size]


def collect_ids(records: Sequence) -> list[str]:
    """Caller-supplied ids, de-duplicated, in first-seen order."""
    ids = (r.get("id") for r in records if isinstance(r, dict))
    return list(dict.fromkeys(i for i in ids if isinstance(i, str) and i))


class BatchImporter:
    """Import records into the relational store one row at a time.

    Outcomes per record:
    - error: rejected by validation before any write was attempted
    - skipped: valid, but its id already exists or the insert failed
    - imported: written (or, in dry-run, would have been written)
    """

    def __init__(
        self,
        store: RecordStore,
        id_generator: Optional[Callable[[int], str]] = None,
        chunk_size: int = EXISTING_ID_CHUNK_SIZE,
    ):
        """Initialize the importer.

        Args:
            store: Relational store to look up and insert rows in
            id_generator: Default generator for records without an id
            chunk_size: Ids per existence lookup
        """
        if chunk_size > store.max_parameters:
            raise ValueError(
                f"chunk_size {chunk_size} exceeds store limit {store.max_parameters}"
            )
        self.store = store
        self.id_generator = id_generator or IdGenerator()
        self.chunk_size = chunk_size

    def find_existing_ids(self, table_name: str, records: Sequence) -> set[str]:
        """Look up which caller-supplied ids already exist, chunk by chunk."""
        ids = collect_ids(records)
        if not ids:
            return set()

        existing: set[str] = set()
        for chunk in chunked(ids, self.chunk_size):
            existing |= self.store.find_existing_ids(table_name, chunk)

        logger.debug(
            f"Found {len(existing)} existing ids in {table_name}",
            extra={"table": table_name, "checked": len(ids), "existing": len(existing)},
        )
        return existing

    def import_records(
        self,
        records: Sequence,
        record_type: str,
        *,
        rules: Optional[tuple[FieldRule, ...]] = None,
        line_offset: int = JSON_LINE_OFFSET,
        dry_run: bool = False,
        user_id: Optional[str] = None,
        id_generator: Optional[Callable[[int], str]] = None,
        batch_size: Optional[int] = None,
        on_batch: Optional[Callable[[int, int], None]] = None,
    ) -> ImportResult:
        """Validate, deduplicate and insert records of one type.

        Args:
            records: Parsed input records, in input order
            record_type: Target table (``deck_master``, ``battle_logs``, ``my_decks``)
            rules: Validation rule set (defaults to the import rules)
            line_offset: Added to the zero-based index to report line numbers
            dry_run: Validate and count without inserting
            user_id: Owner attributed to battle logs and my decks
            id_generator: Generator for records without an id
            batch_size: Records per progress notification
            on_batch: Called as ``on_batch(processed, total)`` after each batch

        Returns:
            ImportResult for this record type
        """
        rules = rules if rules is not None else IMPORT_RULES[record_type]
        generate_id = id_generator or self.id_generator
        total = len(records)
        result = ImportResult(total=total)

        existing_ids = self.find_existing_ids(record_type, records)

        for index, item in enumerate(records):
            line = index + line_offset
            record = normalize_record(item, record_type, user_id)
            validation = validate_record(record, rules)

            if not validation.is_valid:
                for issue in validation.errors:
                    result.errors.append(ImportErrorDetail(line, issue.field, issue.message))
                logger.debug(
                    f"Rejected {record_type} record at line {line}",
                    extra={"line": line, "errors": [e.to_dict() for e in validation.errors]},
                )
            else:
                record_id = record.get("id")
                if record_id and record_id in existing_ids:
                    result.skipped += 1
                else:
                    record_id = record_id or generate_id(index)
                    if self._write(record_type, {**record, "id": record_id}, dry_run):
                        result.imported += 1
                        existing_ids.add(record_id)
                    else:
                        result.skipped += 1

            processed = index + 1
            if on_batch and batch_size and (processed % batch_size == 0 or processed == total):
                on_batch(processed, total)

        logger.info(
            f"Imported {result.imported} {record_type} records",
            extra={
                "record_type": record_type,
                "dry_run": dry_run,
                "total": total,
                "imported": result.imported,
                "skipped": result.skipped,
                "errors": result.error_count,
                "rejected_records": len(result.rejected_lines),
            },
        )
        return result

    def _write(self, record_type: str, record: dict, dry_run: bool) -> bool:
        if dry_run:
            return True
        try:
            self.store.insert(record_type, record)
        except RecordStoreError as e:
            # Duplicate keys from concurrent writers land here as well
            logger.warning(
                f"Insert skipped for {record_type} {record['id']}: {e}",
                extra={"record_type": record_type, "record_id": record["id"]},
            )
            return False
        return True

    def import_json(
        self,
        payload: str,
        record_type: str = "battle_logs",
        **kwargs,
    ) -> ImportResult:
        """Import a JSON array payload.

        Raises:
            ImportFormatError: If the payload is not a JSON array
        """
        records = parse_json(payload, record_type)
        return self.import_records(records, record_type, line_offset=JSON_LINE_OFFSET, **kwargs)

    def import_csv(
        self,
        payload: str,
        record_type: str = "battle_logs",
        **kwargs,
    ) -> ImportResult:
        """Import a CSV payload with a header row.

        Raises:
            ImportFormatError: If the payload is empty or lacks required headers
        """
        records = parse_csv(payload, record_type)
        return self.import_records(records, record_type, line_offset=CSV_LINE_OFFSET, **kwargs)

    def import_payload(
        self,
        payload: str,
        format: str,
        record_type: str = "battle_logs",
        **kwargs,
    ) -> ImportResult:
        """Import a payload in ``json`` or ``csv`` format."""
        if format == "json":
            return self.import_json(payload, record_type, **kwargs)
        if format == "csv":
            return self.import_csv(payload, record_type, **kwargs)
        raise ValueError(f"Unsupported import format: {format}")
