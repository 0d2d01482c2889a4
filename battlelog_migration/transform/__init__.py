"""Record transformation modules.

Handles:
- Legacy field normalization
- Record validation
- JSON/CSV payload parsing
"""

from .normalize import (
    convert_date_format,
    normalize_record,
    normalize_records,
)
from .validate import (
    FieldRule,
    ValidationIssue,
    ValidationResult,
    validate_record,
    IMPORT_RULES,
    LEGACY_RULES,
)
from .parse import parse_csv, parse_json

__all__ = [
    # Normalization
    "convert_date_format",
    "normalize_record",
    "normalize_records",
    # Validation
    "FieldRule",
    "ValidationIssue",
    "ValidationResult",
    "validate_record",
    "IMPORT_RULES",
    "LEGACY_RULES",
    # Parsing
    "parse_csv",
    "parse_json",
]
