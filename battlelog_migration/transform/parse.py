"""JSON and CSV payload parsers for the bulk import endpoint."""

import csv
import io
import json
import logging

from battlelog_migration.errors import ImportFormatError
from battlelog_migration.transform.normalize import FIELD_ALIASES, normalize_record

logger = logging.getLogger(__name__)

INVALID_JSON = "Invalid JSON payload"
NOT_AN_ARRAY = "JSON payload must be an array"
EMPTY_CSV = "CSV payload is empty"
MISSING_HEADERS = "Missing required headers"

REQUIRED_CSV_HEADERS = {
    "battle_logs": (
        "date",
        "battleType",
        "rank",
        "groupName",
        "myDeckId",
        "turn",
        "result",
        "opponentDeckId",
    ),
    "deck_master": ("className", "deckName", "sortOrder"),
    "my_decks": ("deckId", "deckName"),
}


def parse_json(payload: str, record_type: str = "battle_logs") -> list:
    """Parse a JSON array payload into normalized records.

    Args:
        payload: JSON text
        record_type: Record type used for field normalization

    Returns:
        List of records, one per array element

    Raises:
        ImportFormatError: If the payload is not valid JSON or not an array
    """
    try:
        parsed = json.loads(payload)
    except (TypeError, ValueError):
        raise ImportFormatError(INVALID_JSON)

    if not isinstance(parsed, list):
        raise ImportFormatError(NOT_AN_ARRAY)

    return [normalize_record(item, record_type) for item in parsed]


def normalize_header(header: str) -> str:
    """Map a header to its canonical field name (``group`` -> ``groupName``).

    A leading byte-order mark, as written by spreadsheet exports, is dropped.
    """
    header = header.lstrip("\ufeff").strip()
    return FIELD_ALIASES.get(header, header)


def parse_csv(payload: str, record_type: str = "battle_logs") -> list[dict]:
    """Parse delimited text with a header row into normalized records.

    Blank lines are ignored. Empty cells in optional columns are left out
    of the record. A data row whose column count differs from the
    header count is dropped without being reported.

    Raises:
        ImportFormatError: If the payload is empty or lacks required headers
    """
    text = (payload or "").strip()
    if not text:
        raise ImportFormatError(EMPTY_CSV)

    reader = csv.reader(io.StringIO(text))
    header_row = next(reader, None)
    if not header_row or not any(h.strip() for h in header_row):
        raise ImportFormatError(EMPTY_CSV)

    headers = [normalize_header(h) for h in header_row]

    required = REQUIRED_CSV_HEADERS.get(record_type, ())
    missing = [h for h in required if h not in headers]
    if missing:
        raise ImportFormatError(f"{MISSING_HEADERS}: {', '.join(missing)}")

    records = []
    dropped = 0

    for row in reader:
        if not row or not any(value.strip() for value in row):
            continue

        if len(row) != len(headers):
            dropped += 1
            continue

        # Empty optional columns are treated as absent
        record = {
            header: value.strip()
            for header, value in zip(headers, row)
            if value.strip() or header in required
        }
        records.append(normalize_record(record, record_type))

    if dropped:
        logger.info(
            f"Dropped {dropped} CSV rows with mismatched column count",
            extra={"record_type": record_type, "dropped_count": dropped},
        )

    return records
