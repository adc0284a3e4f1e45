"""Catalog records, clocks, errors and delimiter helpers."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol, runtime_checkable

# Separates fields inside a serialized tag or bookmark record.
DELIMITER = "`"

CURRENT_DATA_VERSION = 1


# ── Errors ────────────────────────────────────────────────


class CatalogError(Exception):
    """Base class for catalog failures."""


class ValidationError(CatalogError, ValueError):
    """A caller-supplied URL, title, tag or keyword was rejected."""


class DecodeError(CatalogError, ValueError):
    """A snapshot could not be parsed."""


class UnsupportedVersionError(DecodeError):
    """A snapshot carries a format version this build cannot read."""

    def __init__(self, version: object) -> None:
        super().__init__(f"Unsupported snapshot version: {version!r}")
        self.version = version


def check_text(text: str, what: str, *, allow_empty: bool = True) -> None:
    """Raise ValidationError if *text* contains the delimiter (or is empty when not allowed)."""
    if not isinstance(text, str):
        raise ValidationError(f"{what} must be a string, got {type(text).__name__}")
    if DELIMITER in text:
        raise ValidationError(f"Bad char {DELIMITER!r} in {what}: {text!r}")
    if not allow_empty and not text:
        raise ValidationError(f"{what} must not be empty")


def sanitize_text(text: str) -> str:
    """Replace the delimiter with an apostrophe so *text* can be stored."""
    return text.replace(DELIMITER, "'")


# ── Clock ─────────────────────────────────────────────────


@runtime_checkable
class Clock(Protocol):
    """Time source injected into a store."""

    def now(self) -> int:
        """Current time in whole seconds."""
        ...


class SystemClock:
    """Wall clock, unix seconds."""

    def now(self) -> int:
        return int(time.time())


class FunctionClock:
    """Adapts a zero-argument callable into a Clock."""

    def __init__(self, fn: Callable[[], int]) -> None:
        self._fn = fn

    def now(self) -> int:
        return int(self._fn())


class ManualClock:
    """Clock that only moves when told to. Used by tests and the demo."""

    def __init__(self, start: int = 1) -> None:
        self.time = start

    def now(self) -> int:
        return self.time

    def advance(self, seconds: int) -> int:
        self.time += seconds
        return self.time


def as_clock(clock: Clock | Callable[[], int] | None) -> Clock:
    if clock is None:
        return SystemClock()
    if isinstance(clock, Clock):
        return clock
    if callable(clock):
        return FunctionClock(clock)
    raise TypeError(f"Expected a Clock or a callable, got {type(clock).__name__}")


# ── Records ───────────────────────────────────────────────


class TagKind(enum.Enum):
    """How a tag node came to exist."""

    EXPLICIT = "explicit"  # created or touched through a keyword operation
    AUTO_GENERATED = "auto"  # index node created because a bookmark references it


@dataclass
class BookmarkRecord:
    """A stored bookmark. An empty title marks a tombstone."""

    url: str
    title: str = ""
    update_time: int = 0
    tags: set[str] = field(default_factory=set)

    @property
    def is_live(self) -> bool:
        return self.title != ""

    def copy(self) -> BookmarkRecord:
        return BookmarkRecord(
            url=self.url,
            title=self.title,
            update_time=self.update_time,
            tags=set(self.tags),
        )


@dataclass
class TagInfo:
    """A tag node: keywords plus the derived set of tagged URLs."""

    tag_name: str
    update_time: int = 0
    keywords: set[str] = field(default_factory=set)
    urls: set[str] = field(default_factory=set)

    @property
    def kind(self) -> TagKind:
        return TagKind.EXPLICIT if self.update_time > 0 else TagKind.AUTO_GENERATED

    @property
    def is_empty(self) -> bool:
        return not self.urls and not self.keywords

    @property
    def is_live(self) -> bool:
        return not self.is_empty

    @property
    def is_disposable(self) -> bool:
        """Empty auto-generated node: removed outright instead of tombstoned."""
        return self.is_empty and self.kind is TagKind.AUTO_GENERATED

    def copy(self) -> TagInfo:
        return TagInfo(
            tag_name=self.tag_name,
            update_time=self.update_time,
            keywords=set(self.keywords),
            urls=set(self.urls),
        )


@dataclass
class CatalogState:
    """Full contents of a store, tombstones included."""

    version: int = CURRENT_DATA_VERSION
    last_update_time: int = 0
    last_clear_time: int = 0
    tags: dict[str, TagInfo] = field(default_factory=dict)
    bookmarks: dict[str, BookmarkRecord] = field(default_factory=dict)

    def copy(self) -> CatalogState:
        return CatalogState(
            version=self.version,
            last_update_time=self.last_update_time,
            last_clear_time=self.last_clear_time,
            tags={name: tag.copy() for name, tag in self.tags.items()},
            bookmarks={url: mark.copy() for url, mark in self.bookmarks.items()},
        )

    def rebuild_tag_index(self) -> None:
        """Re-derive every tag's ``urls`` from the bookmarks' tag sets.

        Tag names referenced by a bookmark but missing from ``tags`` get a
        fresh auto-generated node.
        """
        for tag in self.tags.values():
            tag.urls.clear()
        for url, mark in self.bookmarks.items():
            for name in mark.tags:
                node = self.tags.get(name)
                if node is None:
                    node = self.tags[name] = TagInfo(tag_name=name)
                node.urls.add(url)
