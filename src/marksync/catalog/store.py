"""Bookmark catalog store: the mutation, query and garbage-collection surface.

Bookmarks are keyed by URL, tags by name. Each tag node carries the set of
URLs tagged with it; every mutation keeps that index and the bookmarks' own
tag sets in agreement. Deletions leave tombstones (empty title, emptied
explicit tag) so that a later merge can propagate them; tombstones are only
physically removed by ``clear_deleted_items``.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from marksync.catalog import codec
from marksync.catalog.merge import merge_stores
from marksync.catalog.types import (
    BookmarkRecord,
    CatalogState,
    Clock,
    TagInfo,
    as_clock,
    check_text,
)

logger = logging.getLogger(__name__)


class BookmarkStore:
    """In-memory bookmark catalog replica."""

    def __init__(self, clock: Clock | Callable[[], int] | None = None) -> None:
        self._clock = as_clock(clock)
        self._state = CatalogState()

    @property
    def clock(self) -> Clock:
        return self._clock

    def _stamp(self, entity: BookmarkRecord | TagInfo) -> None:
        now = self._clock.now()
        entity.update_time = now
        self._state.last_update_time = now

    # ── Liveness ──────────────────────────────────────────────

    def has_bookmark_record(self, url: str) -> bool:
        mark = self._state.bookmarks.get(url)
        return mark is not None and mark.is_live

    def has_tag_info(self, tag: str) -> bool:
        node = self._state.tags.get(tag)
        return node is not None and node.is_live

    # ── Bookmarks ─────────────────────────────────────────────

    def add_bookmark(self, url: str, title: str) -> None:
        """Add a bookmark, or update its title if it is already live."""
        check_text(url, "url", allow_empty=False)
        check_text(title, "title")
        if self.has_bookmark_record(url):
            self.update_bookmark_title(url, title)
            return
        mark = BookmarkRecord(url=url, title=title)
        self._stamp(mark)
        self._state.bookmarks[url] = mark

    def update_bookmark_title(self, url: str, title: str) -> None:
        """Retitle a live bookmark. An empty title deletes it."""
        check_text(title, "title")
        if not self.has_bookmark_record(url):
            return
        if title == "":
            # Tags must be detached so no tag node keeps pointing at the URL.
            self.delete_bookmark(url)
            return
        mark = self._state.bookmarks[url]
        if mark.title != title:
            mark.title = title
            self._stamp(mark)

    def delete_bookmark(self, url: str) -> None:
        """Detach all tags, then tombstone the bookmark."""
        if not self.has_bookmark_record(url):
            return
        mark = self._state.bookmarks[url]
        for tag in list(mark.tags):
            self.delete_tag_for(url, tag)
        mark.title = ""
        self._stamp(mark)

    # ── Tags on bookmarks ─────────────────────────────────────

    def add_tag_for(self, url: str, tag: str) -> None:
        check_text(tag, "tag", allow_empty=False)
        if not self.has_bookmark_record(url):
            return
        mark = self._state.bookmarks[url]
        if tag in mark.tags:
            return
        mark.tags.add(tag)
        self._stamp(mark)
        # An existing node, tombstone or not, keeps its update_time and keywords.
        node = self._state.tags.get(tag)
        if node is None:
            node = self._state.tags[tag] = TagInfo(tag_name=tag)
        node.urls.add(url)

    def delete_tag_for(self, url: str, tag: str) -> None:
        if not self.has_bookmark_record(url):
            return
        mark = self._state.bookmarks[url]
        if tag not in mark.tags:
            return
        mark.tags.discard(tag)
        self._stamp(mark)
        node = self._state.tags.get(tag)
        if node is None:
            return
        node.urls.discard(url)
        if node.is_disposable:
            del self._state.tags[tag]

    # ── Keywords on tags ──────────────────────────────────────

    def add_keyword_for(self, tag: str, keyword: str) -> None:
        """Attach a lowercase search keyword to a tag, creating the tag if needed.

        A keyword equal to the tag name always re-stamps a live tag but never
        creates a new one. A tombstoned tag counts as missing here, so a
        self-named keyword leaves it untouched.
        """
        check_text(tag, "tag", allow_empty=False)
        check_text(keyword, "keyword", allow_empty=False)
        keyword = keyword.lower()
        if self.has_tag_info(tag):
            node = self._state.tags[tag]
            if keyword not in node.keywords or tag == keyword:
                node.keywords.add(keyword)
                self._stamp(node)
            return
        if tag == keyword:
            return
        # Any node already under this name is empty, so a fresh one replaces it.
        node = TagInfo(tag_name=tag, keywords={keyword})
        self._stamp(node)
        self._state.tags[tag] = node

    def delete_keyword_for(self, tag: str, keyword: str) -> None:
        keyword = keyword.lower()
        if not self.has_tag_info(tag):
            return
        node = self._state.tags[tag]
        if keyword in node.keywords:
            node.keywords.discard(keyword)
            self._stamp(node)

    # ── Queries ───────────────────────────────────────────────

    def get_bookmark_record(self, url: str) -> BookmarkRecord | None:
        if not self.has_bookmark_record(url):
            return None
        return self._state.bookmarks[url].copy()

    def get_tag_info(self, tag: str) -> TagInfo | None:
        if not self.has_tag_info(tag):
            return None
        return self._state.tags[tag].copy()

    def list_tags(self) -> set[str]:
        return {name for name, node in self._state.tags.items() if node.is_live}

    def list_bookmarks(self, tag_filters: Iterable[str] | None = None) -> set[str]:
        """Live bookmark URLs carrying every tag in *tag_filters*."""
        required = set(tag_filters or ())
        return {
            url
            for url, mark in self._state.bookmarks.items()
            if mark.is_live and required <= mark.tags
        }

    def get_last_update_time(self) -> int:
        return self._state.last_update_time

    def get_last_clear_time(self) -> int:
        return self._state.last_clear_time

    def state(self) -> CatalogState:
        """Deep copy of the whole catalog, tombstones included."""
        return self._state.copy()

    # ── Garbage collection ────────────────────────────────────

    def clear_deleted_items(self, before_seconds: int = 0, before_time: int = -1) -> int:
        """Purge tombstones last touched at or before the horizon.

        The horizon is *before_time* when non-negative, otherwise
        ``now - before_seconds``. Returns the number of entities removed.
        """
        now = self._clock.now()
        horizon = before_time if before_time >= 0 else now - before_seconds
        newest_purged = 0

        dead_tags = [
            name
            for name, node in self._state.tags.items()
            if not node.is_live and node.update_time <= horizon
        ]
        for name in dead_tags:
            newest_purged = max(newest_purged, self._state.tags.pop(name).update_time)

        dead_marks = [
            url
            for url, mark in self._state.bookmarks.items()
            if not mark.is_live and mark.update_time <= horizon
        ]
        for url in dead_marks:
            newest_purged = max(newest_purged, self._state.bookmarks.pop(url).update_time)

        self._state.last_clear_time = max(self._state.last_clear_time, newest_purged)
        self._state.last_update_time = now
        logger.debug(
            "Cleared %d tags and %d bookmarks up to %d (last_clear_time=%d)",
            len(dead_tags),
            len(dead_marks),
            horizon,
            self._state.last_clear_time,
        )
        return len(dead_tags) + len(dead_marks)

    # ── Merge & serialization ─────────────────────────────────

    def merge(self, other: BookmarkStore) -> bool:
        """Reconcile with *other* in place; True if *other* received newer data."""
        return merge_stores(self, other)

    def to_json(self) -> str:
        return codec.encode(self._state)

    def from_json(self, text: str, *, strict: bool = False) -> bool:
        """Replace the contents with a decoded snapshot.

        Returns False and leaves the store untouched when the snapshot's
        version is not recognised, unless *strict* is set, in which case
        ``UnsupportedVersionError`` is raised.
        """
        decoded = codec.decode(text, strict=strict)
        if decoded is None:
            return False
        self._state = decoded
        return True

    # ── Debugging ─────────────────────────────────────────────

    def describe(self) -> str:
        """Human-readable dump of the full state, tombstones marked."""
        s = self._state
        lines = [
            f"version: {s.version}",
            f"last update: {s.last_update_time}",
            f"last clear: {s.last_clear_time}",
        ]
        for name, node in s.tags.items():
            marker = "" if node.is_live else " (deleted)"
            lines.append(f"tag {node.update_time} {name}{marker}")
            if node.keywords:
                lines.append(f"    keywords: {', '.join(sorted(node.keywords))}")
            for url in sorted(node.urls):
                lines.append(f"    - {url}")
        for url, mark in s.bookmarks.items():
            marker = "" if mark.is_live else " (deleted)"
            lines.append(f"mark {mark.update_time} {url}{marker}")
            if mark.title:
                lines.append(f"    {mark.title}")
            if mark.tags:
                lines.append(f"    tags: {', '.join(sorted(mark.tags))}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"BookmarkStore(bookmarks={len(self._state.bookmarks)}, "
            f"tags={len(self._state.tags)}, "
            f"last_update_time={self._state.last_update_time})"
        )
