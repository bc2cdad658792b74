"""Process-wide cache of live row counts."""

import time
from typing import Iterable, Optional


class RowCountCache:
    """Remembers exact row counts per (database, table) for a limited time."""

    def __init__(self, ttl: float = 60.0):
        """
        Initialize the cache.

        Args:
            ttl: Seconds a count stays valid (0 disables caching)
        """
        self.ttl = ttl
        self._entries: dict[tuple[str, str], tuple[int, float]] = {}

    def get(self, database: str, table: str) -> Optional[int]:
        """Cached count, or None when missing or expired."""
        entry = self._entries.get((database, table))
        if entry is None:
            return None

        count, stored_at = entry
        if time.monotonic() - stored_at > self.ttl:
            del self._entries[(database, table)]
            return None
        return count

    def put(self, database: str, table: str, count: int) -> None:
        if self.ttl <= 0:
            return
        self._entries[(database, table)] = (count, time.monotonic())

    def forget(self, database: str, tables: Iterable[str]) -> None:
        """Drop cached counts of tables whose contents or names changed."""
        for table in tables:
            self._entries.pop((database, table), None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
