"""Storage clients used by the engine.

- Object store: whole JSON documents, retries with exponential backoff
- Record store: relational tables, batched id lookups
"""

from .object_store import ObjectStoreClient, LEGACY_DOCUMENTS
from .record_store import RecordStore

__all__ = ["ObjectStoreClient", "LEGACY_DOCUMENTS", "RecordStore"]
