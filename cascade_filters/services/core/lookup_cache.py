"""
LookupCache - Screen-scoped cache of reference-data option lists.

Entries are keyed by (level_id, parent_id) and are write-once-per-key: a later
identical fetch may overwrite an entry with an equal value. Concurrent misses
for the same key share a single provider call.
"""

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from cascade_filters.models import CacheInfo, Option

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, Optional[str]]


class LookupCache:
    """Per-level cache of fetched option lists keyed by parent id."""

    def __init__(self):
        self._entries: Dict[CacheKey, Tuple[Option, ...]] = {}
        self._pending: Dict[CacheKey, asyncio.Future] = {}
        self._last_updated: Optional[datetime] = None
        self.hits = 0
        self.misses = 0

    # ============================================================================
    # Entry Access
    # ============================================================================

    def get(self, level_id: str, parent_id: Optional[str]) -> Optional[List[Option]]:
        """Get cached options, None when the key was never fetched."""
        entry = self._entries.get((level_id, parent_id))
        return list(entry) if entry is not None else None

    def put(self, level_id: str, parent_id: Optional[str], options: List[Option]) -> None:
        self._entries[(level_id, parent_id)] = tuple(options)
        self._last_updated = datetime.now()

    def contains(self, level_id: str, parent_id: Optional[str]) -> bool:
        return (level_id, parent_id) in self._entries

    async def get_or_fetch(
        self,
        level_id: str,
        parent_id: Optional[str],
        fetch: Callable[[], Awaitable[List[Option]]]
    ) -> List[Option]:
        """
        Return cached options or fetch them once.

        Args:
            level_id: Cascade level being resolved
            parent_id: Selected value of the parent level (None for root levels)
            fetch: Zero-argument coroutine factory performing the real lookup

        Returns:
            List[Option]: Options for this (level, parent) pair

        Failures are not cached; the next call fetches again.
        """
        key = (level_id, parent_id)

        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            logger.debug(f"Lookup cache hit: {level_id} <- {parent_id}")
            return list(cached)

        pending = self._pending.get(key)
        if pending is not None:
            logger.debug(f"Joining in-flight lookup: {level_id} <- {parent_id}")
            return list(await asyncio.shield(pending))

        self.misses += 1
        future = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        try:
            options = list(await fetch())
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Waiters re-raise it; mark retrieved so an unjoined failure is not logged twice
            future.exception()
            raise
        else:
            self.put(level_id, parent_id, options)
            future.set_result(tuple(options))
            return options
        finally:
            self._pending.pop(key, None)

    # ============================================================================
    # Cache Management
    # ============================================================================

    def invalidate(self, level_id: Optional[str] = None) -> int:
        """Drop entries for one level (or all levels). Returns removed count."""
        if level_id is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            keys = [key for key in self._entries if key[0] == level_id]
            for key in keys:
                del self._entries[key]
            removed = len(keys)
        logger.info(f"Invalidated {removed} lookup cache entries (level={level_id or 'all'})")
        return removed

    def mark_stale(self, reason: str = "external_change") -> None:
        """Mark cache stale - simple invalidation."""
        logger.info(f"Marking lookup cache stale: {reason}")
        self.invalidate()

    def get_cache_info(self) -> CacheInfo:
        """Get cache metadata information."""
        levels: Dict[str, int] = {}
        for level_id, _ in self._entries:
            levels[level_id] = levels.get(level_id, 0) + 1

        return CacheInfo(
            last_updated=self._last_updated or datetime.min,
            entry_count=len(self._entries),
            option_count=sum(len(options) for options in self._entries.values()),
            levels=levels
        )
