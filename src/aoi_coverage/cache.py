"""
Time-to-live text cache used by the TLE store.

The cache is an explicit service injected into its users. Two backends
are provided: an in-process dictionary and a directory of small JSON
files that survives between runs.
"""

from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Union
import hashlib
import json
import logging
import threading
import time

logger = logging.getLogger(__name__)


class TextCache:
    """
    Base class for keyed text caches with a TTL checked on read.

    Subclasses implement ``_load`` and ``_store``; locking and expiry
    are handled here.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, key: str) -> threading.Lock:
        """Per-key lock, for callers doing read-then-fetch-then-write."""
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def get(self, key: str, ttl_hours: float) -> Optional[str]:
        """
        Return cached text if it is younger than ``ttl_hours``.

        Args:
            key: Cache key
            ttl_hours: Maximum age in hours

        Returns:
            Cached text, or None when missing or expired
        """
        entry = self._load(key)
        if entry is None:
            return None

        stored_at, text = entry
        age_hours = (self._clock() - stored_at) / 3600.0
        if age_hours < ttl_hours:
            logger.debug(f"Cache hit for '{key}' (age {age_hours:.2f}h)")
            return text

        logger.debug(f"Cache entry for '{key}' expired (age {age_hours:.2f}h >= {ttl_hours}h)")
        return None

    def put(self, key: str, text: str) -> None:
        """Store text under ``key`` stamped with the current time."""
        self._store(key, self._clock(), text)

    def _load(self, key: str) -> Optional[Tuple[float, str]]:
        raise NotImplementedError

    def _store(self, key: str, stored_at: float, text: str) -> None:
        raise NotImplementedError


class MemoryCache(TextCache):
    """Process-local cache."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        super().__init__(clock)
        self._entries: Dict[str, Tuple[float, str]] = {}

    def _load(self, key: str) -> Optional[Tuple[float, str]]:
        return self._entries.get(key)

    def _store(self, key: str, stored_at: float, text: str) -> None:
        self._entries[key] = (stored_at, text)


class FileCache(TextCache):
    """
    Cache persisted as one JSON file per key.

    Each file holds ``{"key": ..., "storedAt": <unix seconds>, "text": ...}``.
    Unreadable or corrupt files are treated as misses.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(clock)
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]
        return self.directory / f"{digest}.json"

    def _load(self, key: str) -> Optional[Tuple[float, str]]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if data.get("key") != key:
                return None
            return float(data["storedAt"]), str(data["text"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cache file {path}: {e}")
            return None

    def _store(self, key: str, stored_at: float, text: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump({"key": key, "storedAt": stored_at, "text": text}, f)
        tmp_path.replace(path)
