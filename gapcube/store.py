"""
Snapshot persistence.

One JSON file holds the latest generation. Writes go through a temp file and
an atomic rename, so readers never lock and never see a partial generation.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from gapcube.models import CubeSnapshot
from gapcube.sources.cache import atomic_write_json

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Reads and writes the latest CubeSnapshot at a fixed path."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def write(self, snapshot: CubeSnapshot) -> None:
        """Atomically replace the stored generation. Raises on I/O failure."""
        atomic_write_json(self.path, snapshot.to_dict(), indent=2)
        logger.info(f"Wrote generation {snapshot.generation} to {self.path}")

    def read(self) -> Optional[CubeSnapshot]:
        """Latest generation, or None if missing or unreadable."""
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return CubeSnapshot.from_dict(data)
        except Exception as e:
            logger.error(f"Snapshot read failed for {self.path}: {e}")
            return None

    def latest_generation(self) -> int:
        """Generation number on disk, 0 if none."""
        snapshot = self.read()
        return snapshot.generation if snapshot else 0
