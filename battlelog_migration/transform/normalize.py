"""Field normalization for legacy and imported records."""

import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Record types that carry owner attribution
OWNED_RECORD_TYPES = ("battle_logs", "my_decks")

# Legacy field name -> canonical field name
FIELD_ALIASES = {
    "group": "groupName",
}

# Fields coerced from clean integer strings, per record type
INTEGER_FIELDS = {
    "deck_master": ("sortOrder",),
    "battle_logs": ("season",),
    "my_decks": (),
}

# Fields holding legacy slash dates, per record type
DATE_FIELDS = {
    "deck_master": (),
    "battle_logs": ("date",),
    "my_decks": ("createdAt",),
}

BOOLEAN_FIELDS = {
    "deck_master": (),
    "battle_logs": (),
    "my_decks": ("isActive",),
}

LEGACY_DATE_PATTERN = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})$")
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


def convert_date_format(value: Any) -> Any:
    """Convert a ``YYYY/MM/DD`` date string to ``YYYY-MM-DD``.

    Only strings that are entirely date-shaped are converted, with month
    and day zero-padded; any other value is returned unchanged.

    Example:
        >>> convert_date_format("2025/08/07")
        '2025-08-07'
        >>> convert_date_format("2025/8/7")
        '2025-08-07'
        >>> convert_date_format("see 2025/08/07")
        'see 2025/08/07'
    """
    if not isinstance(value, str):
        return value
    match = LEGACY_DATE_PATTERN.fullmatch(value)
    if not match:
        return value
    year, month, day = match.groups()
    return f"{year}-{int(month):02d}-{int(day):02d}"


def coerce_integer(value: Any) -> Any:
    """Parse a non-empty, cleanly numeric string as an integer."""
    if isinstance(value, str):
        stripped = value.strip()
        if stripped and INTEGER_PATTERN.match(stripped):
            return int(stripped)
    return value


def coerce_boolean(value: Any) -> Any:
    """Map ``"true"``/``"false"`` strings to booleans."""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return value


def rename_fields(record: dict) -> dict:
    """Rename legacy field names to their canonical names.

    The legacy name is dropped only when the canonical name is absent.
    """
    renamed = dict(record)
    for legacy_name, canonical_name in FIELD_ALIASES.items():
        if legacy_name in renamed and canonical_name not in renamed:
            renamed[canonical_name] = renamed.pop(legacy_name)
    return renamed


def normalize_record(
    record: Any,
    record_type: str,
    user_id: Optional[str] = None,
) -> Any:
    """Normalize one legacy or incoming record to the target shape.

    Args:
        record: The record to normalize
        record_type: One of ``deck_master``, ``battle_logs``, ``my_decks``
        user_id: Owner to attribute battle logs and my decks to

    Returns:
        A new normalized dict. Values the normalizer does not recognize are
        passed through untouched so the validator can report them.
    """
    if not isinstance(record, dict):
        return record

    normalized = rename_fields(record)

    for field_name in DATE_FIELDS.get(record_type, ()):
        if field_name in normalized:
            normalized[field_name] = convert_date_format(normalized[field_name])

    for field_name in INTEGER_FIELDS.get(record_type, ()):
        if field_name in normalized:
            normalized[field_name] = coerce_integer(normalized[field_name])

    for field_name in BOOLEAN_FIELDS.get(record_type, ()):
        if field_name in normalized:
            normalized[field_name] = coerce_boolean(normalized[field_name])

    if record_type == "my_decks" and normalized.get("isActive") is None:
        normalized["isActive"] = True

    if record_type in OWNED_RECORD_TYPES:
        normalized["userId"] = user_id if user_id is not None else normalized.get("userId")

    return normalized


def normalize_records(
    records: list,
    record_type: str,
    user_id: Optional[str] = None,
) -> list:
    """Normalize a list of records."""
    normalized = [normalize_record(r, record_type, user_id) for r in records]
    logger.debug(f"Normalized {len(normalized)} {record_type} records")
    return normalized
