"""
Snapshot persistence for Sloth Watch.

Each tracked domain (auctions, groups, epics, forum, alerts) keeps exactly one
snapshot of what the site looked like at the end of its last cycle, stored as
status.<kind>.json. Snapshots are last-writer-wins and written atomically so a
crash mid-write leaves the previous file in place.

Values are plain JSON (dicts/lists); the processors convert dataclasses with
to_dict()/from_dict().
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from .config import get_app_config

logger = logging.getLogger(__name__)


class SnapshotStore:
    """
    One JSON file per snapshot kind.

    Usage:
        store = SnapshotStore("data")
        old = store.load_snapshot("groups")   # None on first run
        store.save_snapshot("groups", {...})
    """

    def __init__(self, directory: Optional[str] = None):
        self.directory = Path(directory or get_app_config().snapshot_dir)

    def path_for(self, kind: str) -> Path:
        return self.directory / f"status.{kind}.json"

    def load_snapshot(self, kind: str) -> Optional[Any]:
        """
        Load the snapshot of a domain.

        Returns:
            The stored JSON value, or None if there is no usable snapshot
        """
        path = self.path_for(kind)
        if not path.exists():
            logger.info(f"No {kind} snapshot at {path}")
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Failed to load {kind} snapshot {path}: {e}")
            return None

    def save_snapshot(self, kind: str, value: Any) -> Path:
        """Write the snapshot of a domain, replacing the previous one atomically."""
        path = self.path_for(kind)
        path.parent.mkdir(parents=True, exist_ok=True)

        content = json.dumps(value, indent=2, ensure_ascii=False) + "\n"
        fd, tmp_name = tempfile.mkstemp(prefix=f".status.{kind}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug(f"Saved {kind} snapshot to {path}")
        return path
