"""Sync client: keeps a local replica in step with a shared snapshot slot.

Each device holds its own ``BookmarkStore``. A slot stores the latest
snapshot text somewhere every device can reach. Syncing downloads that
snapshot, merges it into the local store, and uploads the result only when
the slot's copy was missing something the local store knew.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from marksync.catalog.store import BookmarkStore
from marksync.config import SyncConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class Slot(Protocol):
    """Shared location holding one snapshot blob."""

    def download(self) -> str | None:
        """Return the stored snapshot text, or None if nothing was uploaded yet."""
        ...

    def upload(self, blob: str) -> None:
        """Replace the stored snapshot text."""
        ...


class MemorySlot:
    """Slot kept in process memory."""

    def __init__(self, blob: str | None = None) -> None:
        self.blob = blob
        self.uploads = 0

    def download(self) -> str | None:
        return self.blob

    def upload(self, blob: str) -> None:
        self.blob = blob
        self.uploads += 1


class SyncClient:
    """Pull/merge/push cycle for one local replica."""

    def __init__(
        self,
        store: BookmarkStore,
        slot: Slot,
        config: SyncConfig | None = None,
    ) -> None:
        self.store = store
        self.slot = slot
        self.config = config or SyncConfig()

    def pull(self) -> bool:
        """Merge the slot's snapshot into the local store.

        Returns True when the slot needs a fresh upload.
        """
        blob = self.slot.download()
        if blob is None:
            logger.info("Slot is empty, local replica will be uploaded")
            return True
        remote = BookmarkStore(self.store.clock)
        if not remote.from_json(blob, strict=self.config.strict_decode):
            # Unreadable snapshot: keep local state and overwrite the slot.
            return True
        needs_upload = self.store.merge(remote)
        logger.info(
            "Pulled snapshot (last_update_time=%d, needs_upload=%s)",
            self.store.get_last_update_time(),
            needs_upload,
        )
        return needs_upload

    def push(self) -> None:
        self.slot.upload(self.store.to_json())
        logger.info("Uploaded snapshot (last_update_time=%d)", self.store.get_last_update_time())

    def sync(self) -> bool:
        """Pull, then push if the slot is behind. Returns whether it uploaded."""
        if self.pull():
            self.push()
            return True
        return False

    def compact(self) -> int:
        """Purge tombstones older than the configured retention window."""
        purged = self.store.clear_deleted_items(before_seconds=self.config.tombstone_retention)
        logger.info("Compacted %d tombstones", purged)
        return purged
