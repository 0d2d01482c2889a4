"""Exception types raised by the migration and import engine."""


class MigrationError(Exception):
    """Base class for fatal engine errors."""


class ImportFormatError(MigrationError):
    """Raised when an import payload cannot be parsed at all."""


class SourceFormatError(MigrationError):
    """Raised when a legacy document is not a JSON array of records."""


class MissingDocumentError(MigrationError):
    """Raised when a named document does not exist in the object store."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} not found in object store")


class ObjectStoreError(MigrationError):
    """Raised when an object store operation fails after all retries."""

    def __init__(self, operation: str, name: str, attempts: int, last_error: Exception):
        self.operation = operation
        self.name = name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to {operation} {name} after {attempts} attempts: {last_error}"
        )


class RecordStoreError(MigrationError):
    """Raised when the relational store rejects a statement."""


class ParameterLimitError(RecordStoreError):
    """Raised when a single statement would bind too many parameters."""
