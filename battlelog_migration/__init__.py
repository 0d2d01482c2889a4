"""Migration and bulk-import engine for battle-log records."""

__version__ = "0.1.0"
