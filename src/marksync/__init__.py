"""marksync: replicated bookmark catalog with pairwise last-writer-wins merge."""

from marksync.catalog import (
    BookmarkRecord,
    BookmarkStore,
    CatalogError,
    ManualClock,
    TagInfo,
    ValidationError,
    sanitize_text,
)
from marksync.sync import MemorySlot, SyncClient

__version__ = "0.1.0"

__all__ = [
    "BookmarkRecord",
    "BookmarkStore",
    "CatalogError",
    "ManualClock",
    "MemorySlot",
    "SyncClient",
    "TagInfo",
    "ValidationError",
    "sanitize_text",
]
