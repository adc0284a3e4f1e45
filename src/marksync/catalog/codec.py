"""Snapshot codec: a JSON envelope of delimiter-joined records.

Envelope::

    {
      "version": 1,
      "lastUpdateTime": 1700000000,
      "lastClearTime": 1690000000,
      "tags": ["name`updateTime`kw1`kw2", ...],
      "bookmarks": ["url`updateTime`title`tag1`tag2", ...]
    }

Trailing keyword/tag segments are omitted when empty. Auto-generated tag
nodes are index artifacts and are not written; every bookmark is, tombstones
included, because merge needs them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from marksync.catalog.types import (
    CURRENT_DATA_VERSION,
    DELIMITER,
    BookmarkRecord,
    CatalogState,
    DecodeError,
    TagInfo,
    TagKind,
    UnsupportedVersionError,
)

logger = logging.getLogger(__name__)


def _join(*fields: object) -> str:
    return DELIMITER.join(str(f) for f in fields)


def encode_tag(tag: TagInfo) -> str:
    return _join(tag.tag_name, tag.update_time, *sorted(tag.keywords))


def encode_bookmark(mark: BookmarkRecord) -> str:
    return _join(mark.url, mark.update_time, mark.title, *sorted(mark.tags))


def encode(state: CatalogState) -> str:
    """Serialize *state* to snapshot text."""
    payload = {
        "version": state.version,
        "lastUpdateTime": state.last_update_time,
        "lastClearTime": state.last_clear_time,
        "tags": [
            encode_tag(tag)
            for tag in state.tags.values()
            if tag.keywords or tag.kind is TagKind.EXPLICIT
        ],
        "bookmarks": [encode_bookmark(mark) for mark in state.bookmarks.values()],
    }
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


# ── Decoding ──────────────────────────────────────────────


def _parse_time(raw: str, record: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise DecodeError(f"Bad update time in record: {record!r}") from None


def _load_v1(payload: dict[str, Any]) -> CatalogState:
    try:
        state = CatalogState(
            version=CURRENT_DATA_VERSION,
            last_update_time=int(payload.get("lastUpdateTime", 0)),
            last_clear_time=int(payload.get("lastClearTime", 0)),
        )
    except (TypeError, ValueError):
        raise DecodeError("Bad watermark in snapshot") from None

    tags = payload.get("tags", [])
    bookmarks = payload.get("bookmarks", [])
    if not isinstance(tags, list) or not isinstance(bookmarks, list):
        raise DecodeError("Snapshot tags and bookmarks must be lists")

    for record in tags:
        parts = str(record).split(DELIMITER)
        if len(parts) < 2:
            raise DecodeError(f"Truncated tag record: {record!r}")
        name = parts[0]
        state.tags[name] = TagInfo(
            tag_name=name,
            update_time=_parse_time(parts[1], record),
            keywords=set(parts[2:]),
        )

    for record in bookmarks:
        parts = str(record).split(DELIMITER)
        if len(parts) < 3:
            raise DecodeError(f"Truncated bookmark record: {record!r}")
        url = parts[0]
        state.bookmarks[url] = BookmarkRecord(
            url=url,
            title=parts[2],
            update_time=_parse_time(parts[1], record),
            tags=set(parts[3:]),
        )

    state.rebuild_tag_index()
    return state


_LOADERS = {1: _load_v1}


def decode(text: str, *, strict: bool = False) -> CatalogState | None:
    """Parse snapshot text.

    Returns None for a version this build does not know, or raises
    ``UnsupportedVersionError`` when *strict* is set.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise DecodeError("Snapshot must be a JSON object")

    version = payload.get("version")
    loader = _LOADERS.get(version) if type(version) is int else None
    if loader is None:
        if strict:
            raise UnsupportedVersionError(version)
        logger.warning("Ignoring snapshot with unsupported version %r", version)
        return None
    return loader(payload)
