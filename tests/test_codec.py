"""Tests for the snapshot codec."""

from __future__ import annotations

import json
import logging

import pytest

from marksync.catalog import (
    BookmarkStore,
    DecodeError,
    ManualClock,
    TagInfo,
    UnsupportedVersionError,
)
from marksync.catalog.codec import decode

BING = "https://cn.bing.com"
GOOGLE = "https://www.google.com"


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(1)


@pytest.fixture
def store(clock: ManualClock) -> BookmarkStore:
    s = BookmarkStore(clock)
    s.add_bookmark(BING, "Bing search")
    s.add_tag_for(BING, "search")
    s.add_tag_for(BING, "microsoft")
    clock.advance(2)
    s.add_keyword_for("search", "Lookup")
    s.add_keyword_for("search", "find")
    s.add_bookmark(GOOGLE, "Google")
    clock.advance(2)
    s.delete_bookmark(GOOGLE)
    s.add_keyword_for("archive", "old")
    s.delete_keyword_for("archive", "old")
    return s


class TestEncode:
    def test_envelope(self, store: BookmarkStore):
        payload = json.loads(store.to_json())
        assert payload["version"] == 1
        assert payload["lastUpdateTime"] == 5
        assert payload["lastClearTime"] == 0

    def test_tag_records(self, store: BookmarkStore):
        tags = json.loads(store.to_json())["tags"]
        assert "search`3`find`lookup" in tags
        # Explicit tombstone: no keyword segment at all
        assert "archive`5" in tags
        # Auto-generated index node is not data
        assert not any(t.startswith("microsoft`") for t in tags)

    def test_bookmark_records(self, store: BookmarkStore):
        bookmarks = json.loads(store.to_json())["bookmarks"]
        assert f"{BING}`1`Bing search`microsoft`search" in bookmarks
        # Tombstones are kept, with an empty title and no tag segment
        assert f"{GOOGLE}`5`" in bookmarks

    def test_empty_store(self):
        payload = json.loads(BookmarkStore(ManualClock(0)).to_json())
        assert payload == {
            "version": 1,
            "lastUpdateTime": 0,
            "lastClearTime": 0,
            "tags": [],
            "bookmarks": [],
        }


class TestRoundTrip:
    def test_restores_full_state(self, store: BookmarkStore, clock: ManualClock):
        copy = BookmarkStore(clock)
        assert copy.from_json(store.to_json()) is True
        assert copy.state() == store.state()

    def test_live_entities(self, store: BookmarkStore, clock: ManualClock):
        copy = BookmarkStore(clock)
        copy.from_json(store.to_json())
        assert copy.list_bookmarks() == {BING}
        assert copy.list_tags() == {"search", "microsoft"}
        assert copy.get_bookmark_record(BING) == store.get_bookmark_record(BING)
        assert copy.get_tag_info("search") == store.get_tag_info("search")
        assert copy.get_tag_info("microsoft").urls == {BING}

    def test_tombstones_survive(self, store: BookmarkStore, clock: ManualClock):
        copy = BookmarkStore(clock)
        copy.from_json(store.to_json())
        state = copy.state()
        assert state.bookmarks[GOOGLE].title == ""
        assert not copy.has_bookmark_record(GOOGLE)
        assert state.tags["archive"].update_time == 5
        assert not copy.has_tag_info("archive")

    def test_unreferenced_auto_tag_is_dropped(self, clock: ManualClock):
        s = BookmarkStore(clock)
        s.add_bookmark(BING, "Bing search")
        s.add_tag_for(BING, "search")
        # Bypass the API to plant a stray index node
        s._state.tags["stray"] = TagInfo(tag_name="stray")
        copy = BookmarkStore(clock)
        copy.from_json(s.to_json())
        assert "stray" not in copy.state().tags
        assert "search" in copy.state().tags


class TestDecode:
    def test_rebuilds_missing_tag_nodes(self):
        text = json.dumps(
            {
                "version": 1,
                "lastUpdateTime": 9,
                "lastClearTime": 2,
                "tags": ["news`4"],
                "bookmarks": [f"{BING}`9`Bing`news`search"],
            }
        )
        state = decode(text)
        assert state.last_update_time == 9
        assert state.last_clear_time == 2
        assert state.tags["news"].update_time == 4
        assert state.tags["news"].urls == {BING}
        assert state.tags["search"].update_time == 0
        assert state.tags["search"].urls == {BING}
        assert state.bookmarks[BING].tags == {"news", "search"}

    def test_unknown_version_is_ignored(self, store: BookmarkStore, caplog):
        before = store.state()
        text = json.dumps({"version": 2, "tags": [], "bookmarks": []})
        with caplog.at_level(logging.WARNING, logger="marksync.catalog.codec"):
            assert store.from_json(text) is False
        assert store.state() == before
        assert "unsupported version" in caplog.text

    @pytest.mark.parametrize("version", [None, "1", 0, True])
    def test_malformed_version_is_ignored(self, store: BookmarkStore, version):
        before = store.state()
        payload = {"tags": [], "bookmarks": []}
        if version is not None:
            payload["version"] = version
        assert store.from_json(json.dumps(payload)) is False
        assert store.state() == before

    def test_strict_mode_raises(self, store: BookmarkStore):
        before = store.state()
        with pytest.raises(UnsupportedVersionError) as excinfo:
            store.from_json(json.dumps({"version": 7}), strict=True)
        assert excinfo.value.version == 7
        assert store.state() == before

    def test_invalid_json(self, store: BookmarkStore):
        with pytest.raises(DecodeError):
            store.from_json("{not json")
        with pytest.raises(DecodeError):
            store.from_json("[1, 2]")

    @pytest.mark.parametrize("field", ["tags", "bookmarks"])
    def test_null_record_list(self, store: BookmarkStore, field: str):
        payload = {"version": 1, "tags": [], "bookmarks": []}
        payload[field] = None
        before = store.state()
        with pytest.raises(DecodeError):
            store.from_json(json.dumps(payload))
        assert store.state() == before

    def test_truncated_record(self, store: BookmarkStore):
        text = json.dumps({"version": 1, "tags": [], "bookmarks": [f"{BING}`1"]})
        before = store.state()
        with pytest.raises(DecodeError):
            store.from_json(text)
        assert store.state() == before
