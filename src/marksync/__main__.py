"""Entry point: python -m marksync [demo|show FILE]

- No args / "demo": Two replicas syncing through an in-memory slot
- "show FILE":      Decode a snapshot file and print its contents
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from marksync.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_demo() -> None:
    """Two devices editing independently, reconciled through one slot."""
    config = load_config()
    _setup_logging(config.log_level)

    from marksync.catalog import BookmarkStore, ManualClock
    from marksync.sync import MemorySlot, SyncClient

    clock = ManualClock()
    slot = MemorySlot()
    laptop = SyncClient(BookmarkStore(clock), slot, config.sync)
    phone = SyncClient(BookmarkStore(clock), slot, config.sync)

    laptop.store.add_bookmark("http://dragon.tech", "This is the dragon's place")
    laptop.store.add_tag_for("http://dragon.tech", "dragon")
    laptop.sync()
    phone.sync()

    clock.advance(5)
    phone.store.add_bookmark("http://ice-rime.tech", "Ice Rime")
    phone.store.add_tag_for("http://ice-rime.tech", "tech")

    clock.advance(5)
    laptop.store.add_bookmark("http://dragonmon.top", "Dragonmon")
    laptop.store.add_tag_for("http://dragonmon.top", "wyvern")
    laptop.store.add_tag_for("http://dragonmon.top", "dragon")

    clock.advance(5)
    phone.store.add_keyword_for("dragon", "kobold")
    phone.store.add_keyword_for("dragon", "wyvern")

    laptop.sync()
    phone.sync()
    laptop.sync()

    print(laptop.store.describe())
    print()
    print(f"Snapshot size: {len(slot.blob or '')} chars, uploads: {slot.uploads}")


def _run_show(path: str) -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from marksync.catalog import BookmarkStore, CatalogError

    store = BookmarkStore()
    try:
        loaded = store.from_json(
            Path(path).read_text(encoding="utf-8"),
            strict=config.sync.strict_decode,
        )
    except (CatalogError, OSError) as e:
        logging.getLogger("marksync").error("Cannot read snapshot %s: %s", path, e)
        sys.exit(1)
    if not loaded:
        print(f"{path}: unsupported snapshot version, nothing loaded")
        sys.exit(1)
    print(store.describe())


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "demo"

    if cmd == "demo":
        _run_demo()
    elif cmd == "show" and len(sys.argv) > 2:
        _run_show(sys.argv[2])
    else:
        print("Usage: python -m marksync [demo|show FILE]")
        print("  demo  : Two replicas syncing through an in-memory slot (default)")
        print("  show  : Print the contents of a snapshot file")
        sys.exit(1)


if __name__ == "__main__":
    main()
