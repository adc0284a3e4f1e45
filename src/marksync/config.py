"""Configuration loading from environment variables and marksync.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_CONFIG_FILENAME = "marksync.toml"
_DEFAULT_RETENTION = 30 * 24 * 3600


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class SyncConfig:
    """Replica synchronization settings."""

    tombstone_retention: int = _DEFAULT_RETENTION  # seconds
    strict_decode: bool = False


@dataclass
class MarksyncConfig:
    """Top-level marksync configuration."""

    sync: SyncConfig = field(default_factory=SyncConfig)
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> MarksyncConfig:
    """Load configuration from environment variables and optional marksync.toml.

    Priority: environment variables > marksync.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.marksync/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".marksync" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    sync_data = file_data.get("sync", {})

    return MarksyncConfig(
        sync=SyncConfig(
            tombstone_retention=int(
                os.getenv(
                    "MARKSYNC_TOMBSTONE_RETENTION",
                    sync_data.get("tombstone_retention", _DEFAULT_RETENTION),
                )
            ),
            strict_decode=_as_bool(
                os.getenv("MARKSYNC_STRICT_DECODE", sync_data.get("strict_decode", False))
            ),
        ),
        log_level=os.getenv("MARKSYNC_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
