"""
In-process TTL cache for dashboard view reads.

Every read of a ``dashboard.*`` view goes through a ViewCache instance keyed by
the view name and the bound query parameters. Entries expire after a per-entry
TTL and are dropped explicitly with invalidate(), which the materialized-view
refresh calls once the database has new data.

The cache is a plain object owned by the application (one instance created at
startup, injected through ViewCacheDep). It is only used from the event loop
thread and never awaits between reading and writing an entry, so it carries
no locks.

Usage:
    cache = ViewCache()
    rows = await cache.get_or_load(
        "finanzas_diario", (start, end, None), 300, lambda: load_rows(...)
    )
    cache.invalidate()                     # everything
    cache.invalidate("finanzas_diario")    # one view
"""

import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Tuple

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Hashable]


@dataclass
class CacheEntry:
    """A cached view read."""
    rows: List[Dict[str, Any]]
    stored_at: float
    ttl_seconds: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl_seconds


class ViewCache:
    """
    TTL cache for view rows keyed by (view name, query parameters).

    Args:
        clock: Monotonic time source in seconds. Tests pass a fake clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, view: str, params: Hashable = ()) -> Optional[List[Dict[str, Any]]]:
        """Return the cached rows if present and fresh, otherwise None."""
        entry = self._entries.get((view, params))
        if entry is None:
            return None
        if not entry.is_fresh(self._clock()):
            del self._entries[(view, params)]
            return None
        return list(entry.rows)

    def set(
        self,
        view: str,
        params: Hashable,
        rows: List[Dict[str, Any]],
        ttl_seconds: float,
    ) -> None:
        """Store rows for (view, params) with the given TTL."""
        self._entries[(view, params)] = CacheEntry(
            rows=list(rows),
            stored_at=self._clock(),
            ttl_seconds=ttl_seconds,
        )

    async def get_or_load(
        self,
        view: str,
        params: Hashable,
        ttl_seconds: float,
        loader: Callable[[], Awaitable[List[Dict[str, Any]]]],
    ) -> List[Dict[str, Any]]:
        """
        Return cached rows or await loader() and cache its result.

        Args:
            view: View name, used for per-view invalidation.
            params: Hashable query parameters (filters).
            ttl_seconds: Lifetime of a newly stored entry.
            loader: Zero-argument coroutine factory that reads the view.

        Returns:
            List of row dicts.

        Note:
            Loader errors propagate and nothing is cached for that key.
        """
        cached = self.get(view, params)
        if cached is not None:
            self.hits += 1
            return cached

        self.misses += 1
        rows = await loader()
        self.set(view, params, rows, ttl_seconds)
        logger.debug(f"Cached {len(rows)} rows for view={view} params={params}")
        return list(rows)

    def invalidate(self, view: Optional[str] = None) -> int:
        """
        Drop cached entries.

        Args:
            view: Only drop entries of this view. None drops everything.

        Returns:
            Number of entries removed.
        """
        if view is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            keys = [key for key in self._entries if key[0] == view]
            for key in keys:
                del self._entries[key]
            removed = len(keys)

        logger.info(f"View cache invalidated (view={view or 'ALL'}, entries={removed})")
        return removed


@lru_cache()
def get_view_cache() -> ViewCache:
    """Return the process-wide ViewCache instance."""
    return ViewCache()
