"""Bookmark catalog: replicated bookmarks, tags and keywords.

Modules:
    types.py   Records, clocks, errors and delimiter helpers
    store.py   BookmarkStore: mutation API, queries, garbage collection
    merge.py   Pairwise last-writer-wins reconciliation of two stores
    codec.py   JSON snapshot envelope with delimiter-joined records
"""

from marksync.catalog.store import BookmarkStore
from marksync.catalog.types import (
    DELIMITER,
    BookmarkRecord,
    CatalogError,
    CatalogState,
    Clock,
    DecodeError,
    ManualClock,
    SystemClock,
    TagInfo,
    TagKind,
    UnsupportedVersionError,
    ValidationError,
    sanitize_text,
)

__all__ = [
    "DELIMITER",
    "BookmarkRecord",
    "BookmarkStore",
    "CatalogError",
    "CatalogState",
    "Clock",
    "DecodeError",
    "ManualClock",
    "SystemClock",
    "TagInfo",
    "TagKind",
    "UnsupportedVersionError",
    "ValidationError",
    "sanitize_text",
]
