"""Pairwise reconciliation of two catalog replicas.

Both replicas are mutated in place until they hold the same content:

1. Skip when both ``last_update_time`` watermarks already agree.
2. The replica with the older ``last_clear_time`` purges its tombstones up
   to the other's horizon, so neither side resurrects something the other
   has already collected.
3. Tags, then bookmarks, are copied both ways; where both sides hold an
   entity the strictly newer ``update_time`` wins and equal timestamps are
   left alone.
4. Copying does not carry cross references, so each side re-derives its tag
   URL index from its bookmarks.
5. Watermarks are raised to the pairwise maximum.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

from marksync.catalog.types import BookmarkRecord, CatalogState, TagInfo, TagKind

if TYPE_CHECKING:
    from marksync.catalog.store import BookmarkStore

logger = logging.getLogger(__name__)

_Entity = TypeVar("_Entity", BookmarkRecord, TagInfo)


def _pull(target: dict[str, _Entity], source: dict[str, _Entity]) -> int:
    """Copy entities from *source* that *target* lacks or holds an older copy of."""
    written = 0
    for key, entity in list(source.items()):
        # Auto-generated tag nodes carry no data; _reindex recreates them.
        if isinstance(entity, TagInfo) and entity.kind is TagKind.AUTO_GENERATED:
            continue
        mine = target.get(key)
        if mine is None or entity.update_time > mine.update_time:
            target[key] = entity.copy()
            written += 1
    return written


def _reconcile(mine: dict[str, _Entity], theirs: dict[str, _Entity]) -> bool:
    """Run both copy directions; True when *theirs* was written to."""
    _pull(mine, theirs)
    return _pull(theirs, mine) > 0


def _reindex(state: CatalogState) -> None:
    state.rebuild_tag_index()
    for name in [name for name, node in state.tags.items() if node.is_disposable]:
        del state.tags[name]


def merge_stores(store: BookmarkStore, other: BookmarkStore) -> bool:
    """Merge *other* into *store* and vice versa.

    Returns True when *other* was missing information that *store* held,
    i.e. the other replica's upstream copy needs to be re-uploaded.
    """
    if store is other:
        return False
    mine, theirs = store._state, other._state
    if mine.last_update_time == theirs.last_update_time:
        return False

    changed = False
    if mine.last_clear_time < theirs.last_clear_time:
        store.clear_deleted_items(before_time=theirs.last_clear_time)
    elif mine.last_clear_time > theirs.last_clear_time:
        other.clear_deleted_items(before_time=mine.last_clear_time)
        changed = True

    if _reconcile(mine.tags, theirs.tags):
        changed = True
    if _reconcile(mine.bookmarks, theirs.bookmarks):
        changed = True

    _reindex(mine)
    _reindex(theirs)

    last_clear = max(mine.last_clear_time, theirs.last_clear_time)
    last_update = max(mine.last_update_time, theirs.last_update_time)
    for state in (mine, theirs):
        state.last_clear_time = last_clear
        state.last_update_time = last_update

    logger.debug(
        "Merged replicas (last_update_time=%d, last_clear_time=%d, other_changed=%s)",
        last_update,
        last_clear,
        changed,
    )
    return changed
