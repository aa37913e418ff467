"""
File-backed JSON cache with TTL for external API responses.

Cache I/O never breaks callers: an unreadable file is an empty cache, and a
failed write is logged and disables persistence for that instance (entries are
still served from memory).
"""

import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def atomic_write_json(path: Path, data: Any, indent: Optional[int] = None) -> None:
    """
    Write JSON via temp file in the same directory, then rename over `path`.

    Readers see either the previous file or the complete new one.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class ApiCache:
    """
    TTL cache persisted as one JSON document.

    Usage:
        cache = ApiCache(data_dir / "openalex-cache.json", ttl_seconds=6 * 3600)
        hit = cache.get("search:crispr:25")
        if hit is None:
            cache.set("search:crispr:25", payload)
    """

    def __init__(
        self,
        path: Optional[Path],
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            path: JSON file to persist to (None keeps the cache in memory)
            ttl_seconds: Entry lifetime
            clock: Wall clock (injectable for tests)
        """
        self.path = Path(path) if path else None
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, dict] = {}
        self.persist = self.path is not None
        self._load()

    @classmethod
    def for_source(cls, name: str) -> "ApiCache":
        """Response cache for a provider, under DATA_DIR with its CACHE_TTL_HOURS."""
        from gapcube.config import config

        hours = config.CACHE_TTL_HOURS.get(name, 24)
        return cls(config.DATA_DIR / f"{name}-cache.json", ttl_seconds=hours * 3600)

    def _load(self) -> None:
        if not self.path or not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            entries = data.get("entries", {}) if isinstance(data, dict) else {}
            self._entries = {
                k: v for k, v in entries.items()
                if isinstance(v, dict) and "ts" in v and "value" in v
            }
        except Exception as e:
            logger.warning(f"Cache read failed for {self.path}, starting empty: {e}")
            self._entries = {}

    def _save(self) -> None:
        if not self.persist:
            return
        try:
            atomic_write_json(self.path, {"entries": self._entries})
        except Exception as e:
            logger.error(f"Cache write failed for {self.path}, persistence disabled: {e}")
            self.persist = False

    def _expired(self, entry: dict) -> bool:
        return self._clock() - entry["ts"] > self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None if missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            del self._entries[key]
            return None
        return entry["value"]

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = {"value": value, "ts": self._clock()}
        self._save()

    def cleanup(self) -> int:
        """Remove expired entries and persist. Returns number removed."""
        expired = [k for k, v in self._entries.items() if self._expired(v)]
        for key in expired:
            del self._entries[key]
        if expired:
            self._save()
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
