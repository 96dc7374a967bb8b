"""In-memory query cache scoped by owner.

Entries are addressed by a named query key, the owner ID and optional extra
parameters (e.g. the dashboard year). Invalidation works on the name and
owner and drops every parameter variant at once.
"""

import logging
from collections.abc import Callable, Hashable, Iterable
from threading import Lock
from typing import Any, Optional

logger = logging.getLogger(__name__)

CacheKey = tuple[str, Optional[str], tuple[Hashable, ...]]


class QueryCache:
    """Thread-safe memo of query results."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, Any] = {}
        self._lock = Lock()

    def get(self, name: str, owner_id: Optional[str], *params: Hashable) -> Any:
        with self._lock:
            return self._entries.get((name, owner_id, params))

    def set(self, name: str, owner_id: Optional[str], value: Any, *params: Hashable) -> None:
        with self._lock:
            self._entries[(name, owner_id, params)] = value

    def contains(self, name: str, owner_id: Optional[str], *params: Hashable) -> bool:
        with self._lock:
            return (name, owner_id, params) in self._entries

    def get_or_compute(
        self,
        name: str,
        owner_id: Optional[str],
        compute: Callable[[], Any],
        *params: Hashable,
    ) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        key = (name, owner_id, params)
        with self._lock:
            if key in self._entries:
                return self._entries[key]
        value = compute()
        with self._lock:
            self._entries[key] = value
        return value

    def invalidate(self, names: Iterable[str], owner_id: Optional[str]) -> int:
        """Drop all entries for the given names and owner.

        Returns:
            int: Number of entries removed.
        """
        wanted = set(names)
        with self._lock:
            stale = [k for k in self._entries if k[0] in wanted and k[1] == owner_id]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def invalidate_all(self, names: Iterable[str]) -> int:
        """Drop entries for the given names across every owner."""
        wanted = set(names)
        with self._lock:
            stale = [k for k in self._entries if k[0] in wanted]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        """Remove everything. Used in tests to avoid cross-test pollution."""
        with self._lock:
            self._entries.clear()


_query_cache = QueryCache()


def get_query_cache() -> QueryCache:
    """Return the process-wide query cache."""
    return _query_cache
