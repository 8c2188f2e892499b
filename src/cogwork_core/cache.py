"""Fingerprint-keyed build cache.

Entries are keyed by (physical path, chain signature) and remember the
fingerprint of the file and of every dependency recorded while building
it. An entry is served only while all of those fingerprints are unchanged.
There is no eviction beyond process lifetime.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from stat import S_ISDIR
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

Fingerprint = tuple[int, int] | None


def fingerprint(path: Path) -> Fingerprint:
    """Return (size, mtime_ns) of a file, or None when it is missing.

    Directories are fingerprinted by their listing, so adding or removing
    an entry changes the fingerprint whatever the timestamp resolution.
    """
    try:
        stat = path.stat()
        if S_ISDIR(stat.st_mode):
            names = tuple(sorted(os.listdir(path)))
            return (len(names), hash(names))
    except OSError:
        return None
    return (stat.st_size, stat.st_mtime_ns)


@dataclass(frozen=True)
class CacheEntry:
    """A compiled result and the fingerprints it was built from.

    Attributes:
        path: Physical file the entry was built from.
        signature: Transform chain signature.
        content: Compiled bytes.
        fingerprints: Fingerprint of ``path`` and each dependency.
        metadata: Front-matter locals gathered while building.
    """

    path: Path
    signature: Hashable
    content: bytes
    fingerprints: Mapping[Path, Fingerprint]
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def is_fresh(self) -> bool:
        """True while every recorded fingerprint is unchanged."""
        return all(fingerprint(p) == fp for p, fp in self.fingerprints.items())


class BuildCache:
    """Thread-safe memo of compiled assets.

    Builders run outside the lock, so two threads missing on the same key
    may both build; the last store wins and readers never see a partial
    entry.

    Example:
        >>> cache = BuildCache()
        >>> entry = cache.get_or_build(path, ("scss",), lambda: build(path))
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[Path, Hashable], CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, path: Path, signature: Hashable) -> CacheEntry | None:
        """Return a fresh entry for the key, or None."""
        with self._lock:
            entry = self._entries.get((path, signature))
        if entry is not None and entry.is_fresh():
            return entry
        return None

    def store(self, entry: CacheEntry) -> None:
        """Store an entry, replacing any previous one for its key."""
        with self._lock:
            self._entries[(entry.path, entry.signature)] = entry

    def get_or_build(
        self,
        path: Path,
        signature: Hashable,
        builder: Callable[[], CacheEntry],
    ) -> CacheEntry:
        """Return the cached entry or build, store and return a new one.

        Args:
            path: Physical file.
            signature: Transform chain signature.
            builder: Called on a miss; must return an entry for the same key.

        Returns:
            The fresh cache entry.
        """
        entry = self.get(path, signature)
        if entry is not None:
            with self._lock:
                self.hits += 1
            logger.debug("cache_hit", path=str(path))
            return entry

        with self._lock:
            self.misses += 1
        logger.debug("cache_miss", path=str(path))
        entry = builder()
        self.store(entry)
        return entry

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
