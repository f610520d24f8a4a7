"""Per-scan memoization of file blame."""

import threading
from typing import Callable, Dict, Optional, Tuple, Union

from gittodos.errors import BlameUnresolved
from gittodos.models import CommitInfo

BlameKey = Tuple[str, Optional[str]]
BlameLines = Dict[int, CommitInfo]


class BlameCache:
    """In-memory cache of whole-file blame keyed by (path, revision).

    Each key is computed at most once, even when several threads ask for it
    at the same time. Failed blames are cached too, so an unresolvable file
    is not retried within the same scan.
    """

    def __init__(self) -> None:
        self._entries: Dict[BlameKey, Union[BlameLines, BlameUnresolved]] = {}
        self._key_locks: Dict[BlameKey, threading.Lock] = {}
        self._lock = threading.Lock()

        # Stats
        self.hits = 0
        self.misses = 0

    def get_or_compute(self, path: str, revision: Optional[str], compute: Callable[[], BlameLines]) -> BlameLines:
        """Return cached blame for a file, computing it on first use.

        Args:
            path: File path
            revision: Revision the blame is for (None for the working tree)
            compute: Produces the blame when it is not cached

        Raises:
            BlameUnresolved: If the file could not be blamed (cached)
        """
        key = (path, revision)
        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            entry = self._entries.get(key)
            if entry is None:
                with self._lock:
                    self.misses += 1
                try:
                    entry = compute()
                except BlameUnresolved as e:
                    entry = e
                self._entries[key] = entry
            else:
                with self._lock:
                    self.hits += 1

        if isinstance(entry, BlameUnresolved):
            raise BlameUnresolved(entry.path, entry.line_number)
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, object]:
        """Get cache statistics."""
        total = self.hits + self.misses
        hit_rate = (self.hits / total * 100) if total > 0 else 0
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{hit_rate:.1f}%",
            "files": len(self._entries),
        }
