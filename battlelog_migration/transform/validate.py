"""Record validation rules for legacy and imported records.

Validation is record-local: a rule set is applied to one record at a time
and never looks at other records or at the store. Every invalid field
yields exactly one diagnostic, in rule order.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

logger = logging.getLogger(__name__)

BATTLE_TYPES = ("ランクマッチ", "対戦台", "ロビー大会")
RANKS = ("サファイア", "ダイアモンド", "ルビー", "トパーズ", "-")
TURNS = ("先攻", "後攻")
BATTLE_RESULTS = ("勝ち", "負け")
CLASS_NAMES = (
    "エルフ",
    "ロイヤル",
    "ウィッチ",
    "ドラゴン",
    "ネクロマンサー",
    "ヴァンパイア",
    "ビショップ",
    "ネメシス",
)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TYPE_NAMES = {str: "string", int: "integer", bool: "boolean"}


@dataclass
class ValidationIssue:
    """One field-level diagnostic."""

    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    """Result of record validation."""

    is_valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    record: Optional[dict] = None


@dataclass(frozen=True)
class FieldRule:
    """Constraints for a single record field.

    Attributes:
        name: Field name in the normalized record
        type: Expected primitive type (str, int or bool)
        required: Whether the field must be present and non-null
        non_empty: Reject blank strings
        choices: Closed set of allowed values
        is_date: Must be a real, non-future ``YYYY-MM-DD`` date
        min_value: Inclusive lower bound for integers
        max_length: Upper bound on string length
    """

    name: str
    type: type = str
    required: bool = True
    non_empty: bool = False
    choices: Optional[tuple] = None
    is_date: bool = False
    min_value: Optional[int] = None
    max_length: Optional[int] = None


def _is_type(value: Any, expected: type) -> bool:
    # bool is a subclass of int; never accept it as a number
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)


def check_date(value: str, today: date) -> Optional[str]:
    """Return an error message for an invalid date string, or None."""
    if not DATE_PATTERN.match(value):
        return "Date must use YYYY-MM-DD format"
    try:
        parsed = date.fromisoformat(value)
    except ValueError:
        return f"Invalid calendar date: {value}"
    if parsed > today:
        return "Date must not be in the future"
    return None


def check_field(record: dict, rule: FieldRule, today: date) -> Optional[str]:
    """Apply one rule to a record; return the diagnostic message or None."""
    name = rule.name

    if name not in record:
        return f"Missing required field: {name}" if rule.required else None

    value = record[name]
    if value is None:
        return f"Null value for required field: {name}" if rule.required else None

    if not _is_type(value, rule.type):
        return f"Invalid type for field {name}: expected {TYPE_NAMES[rule.type]}"

    if rule.type is str:
        if rule.non_empty and not value.strip():
            return f"Empty value for required field: {name}"
        if rule.max_length is not None and len(value) > rule.max_length:
            return f"Field {name} must be at most {rule.max_length} characters"

    if rule.choices is not None and value not in rule.choices:
        return f"Invalid value for {name}: must be one of {', '.join(map(str, rule.choices))}"

    if rule.is_date:
        return check_date(value, today)

    if rule.min_value is not None and value < rule.min_value:
        return f"Field {name} must be at least {rule.min_value}"

    return None


def validate_record(
    record: Any,
    rules: tuple[FieldRule, ...],
    today: Optional[date] = None,
) -> ValidationResult:
    """Validate one record against a rule set.

    Args:
        record: The normalized record to validate
        rules: Rule set to apply, in diagnostic order
        today: Reference date for the future-date check (defaults to today)

    Returns:
        ValidationResult with one issue per invalid field
    """
    if not isinstance(record, dict):
        return ValidationResult(
            is_valid=False,
            errors=[ValidationIssue("record", "Record must be an object")],
        )

    today = today or date.today()
    errors = []

    for rule in rules:
        message = check_field(record, rule, today)
        if message:
            errors.append(ValidationIssue(rule.name, message))

    return ValidationResult(
        is_valid=len(errors) == 0,
        errors=errors,
        record=record if len(errors) == 0 else None,
    )


# ============================================
# Legacy (migration) rule sets
# ============================================

LEGACY_DECK_MASTER_RULES = (
    FieldRule("id", required=False),
    FieldRule("className"),
    FieldRule("deckName"),
    FieldRule("sortOrder", type=int),
)

LEGACY_BATTLE_LOG_RULES = (
    FieldRule("id", required=False),
    FieldRule("date", is_date=True),
    FieldRule("battleType"),
    FieldRule("rank"),
    FieldRule("groupName"),
    FieldRule("myDeckId", non_empty=True),
    FieldRule("turn"),
    FieldRule("result"),
    FieldRule("opponentDeckId", non_empty=True),
    FieldRule("season", type=int, required=False),
)

LEGACY_MY_DECK_RULES = (
    FieldRule("id", required=False),
    FieldRule("deckId", non_empty=True),
    FieldRule("deckCode"),
    FieldRule("deckName"),
    FieldRule("isActive", type=bool),
    FieldRule("createdAt", required=False),
)

# ============================================
# Import rule sets
# ============================================

IMPORT_DECK_MASTER_RULES = (
    FieldRule("id", required=False),
    FieldRule("className", choices=CLASS_NAMES),
    FieldRule("deckName", non_empty=True, max_length=100),
    FieldRule("sortOrder", type=int, min_value=0),
)

IMPORT_BATTLE_LOG_RULES = (
    FieldRule("id", required=False),
    FieldRule("userId", required=False),
    FieldRule("date", is_date=True),
    FieldRule("battleType", choices=BATTLE_TYPES),
    FieldRule("rank", choices=RANKS),
    FieldRule("groupName", non_empty=True),
    FieldRule("myDeckId", non_empty=True),
    FieldRule("turn", choices=TURNS),
    FieldRule("result", choices=BATTLE_RESULTS),
    FieldRule("opponentDeckId", non_empty=True),
    FieldRule("season", type=int, required=False, min_value=1),
)

IMPORT_MY_DECK_RULES = (
    FieldRule("id", required=False),
    FieldRule("userId", required=False),
    FieldRule("deckId", non_empty=True),
    FieldRule("deckName", non_empty=True, max_length=100),
    FieldRule("deckCode", required=False),
    FieldRule("isActive", type=bool, required=False),
)

LEGACY_RULES = {
    "deck_master": LEGACY_DECK_MASTER_RULES,
    "battle_logs": LEGACY_BATTLE_LOG_RULES,
    "my_decks": LEGACY_MY_DECK_RULES,
}

IMPORT_RULES = {
    "deck_master": IMPORT_DECK_MASTER_RULES,
    "battle_logs": IMPORT_BATTLE_LOG_RULES,
    "my_decks": IMPORT_MY_DECK_RULES,
}
