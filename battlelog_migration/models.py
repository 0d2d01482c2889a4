"""Result and source value objects for imports, migrations and rollbacks."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Union

from battlelog_migration.clients.object_store import LEGACY_DOCUMENTS, ObjectStoreClient

# Forward migration order: reference data first, then dependents
RECORD_TYPES = ("deck_master", "battle_logs", "my_decks")

# Report keys, per record type
REPORT_KEYS = {
    "deck_master": "deckMaster",
    "battle_logs": "battleLogs",
    "my_decks": "myDecks",
}


@dataclass
class ImportErrorDetail:
    """A field-level diagnostic addressed by input line."""

    line: int
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"line": self.line, "field": self.field, "message": self.message}


@dataclass
class ImportResult:
    """Outcome of importing one record type.

    ``errors`` holds one entry per invalid field, so a single rejected
    record may contribute several entries. ``skipped`` counts valid records
    that were not written (known or late-discovered duplicates).
    """

    imported: int = 0
    skipped: int = 0
    errors: list[ImportErrorDetail] = field(default_factory=list)
    total: int = 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def rejected_lines(self) -> list[int]:
        """Distinct input lines that failed validation, in order."""
        return list(dict.fromkeys(e.line for e in self.errors))

    def to_dict(self) -> dict:
        """Convert to the API response shape."""
        details = {}
        if self.errors:
            details["errorDetails"] = [e.to_dict() for e in self.errors]
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": self.error_count,
            "details": details,
        }


@dataclass
class MigrationReport:
    """Aggregated results of one migration run."""

    results: dict[str, ImportResult] = field(
        default_factory=lambda: {t: ImportResult() for t in RECORD_TYPES}
    )
    total_time_ms: int = 0
    completed_at: Optional[str] = None
    dry_run: bool = False

    @property
    def deck_master(self) -> ImportResult:
        return self.results["deck_master"]

    @property
    def battle_logs(self) -> ImportResult:
        return self.results["battle_logs"]

    @property
    def my_decks(self) -> ImportResult:
        return self.results["my_decks"]

    def to_dict(self) -> dict:
        data = {REPORT_KEYS[t]: self.results[t].to_dict() for t in RECORD_TYPES}
        data["totalTimeMs"] = self.total_time_ms
        data["completedAt"] = self.completed_at
        data["dryRun"] = self.dry_run
        return data


ROLLBACK_KEYS = {
    "battle_logs": "deletedBattleLogs",
    "deck_master": "deletedDeckMaster",
    "my_decks": "deletedMyDecks",
}


@dataclass
class RollbackResult:
    """Outcome of a rollback.

    ``status`` is ``completed`` when every requested table was cleared,
    ``partial`` when a failure happened after at least one table was
    cleared, and ``failed`` when nothing was deleted.
    """

    deleted: dict[str, int] = field(
        default_factory=lambda: {t: 0 for t in ROLLBACK_KEYS}
    )
    success: bool = False
    error: Optional[str] = None
    completed_at: Optional[str] = None
    status: str = "failed"

    def to_dict(self) -> dict:
        data = {ROLLBACK_KEYS[t]: count for t, count in self.deleted.items()}
        data.update(
            {
                "success": self.success,
                "status": self.status,
                "completedAt": self.completed_at,
            }
        )
        if self.error is not None:
            data["error"] = self.error
        return data


# ============================================
# Data sources
# ============================================

@dataclass(frozen=True)
class LocalSource:
    """Legacy records supplied in memory, keyed by record type.

    A record type without an entry migrates as an empty list.
    """

    records: Mapping[str, Sequence[dict]] = field(default_factory=dict)

    def __post_init__(self):
        unknown = set(self.records) - set(RECORD_TYPES)
        if unknown:
            raise ValueError(f"Unknown record types: {', '.join(sorted(unknown))}")


@dataclass(frozen=True)
class RemoteSource:
    """Legacy records read from named JSON documents in the object store."""

    store: ObjectStoreClient
    document_names: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(LEGACY_DOCUMENTS))
    )

    def __post_init__(self):
        missing = set(RECORD_TYPES) - set(self.document_names)
        if missing:
            raise ValueError(f"No document name for: {', '.join(sorted(missing))}")


DataSource = Union[LocalSource, RemoteSource]
