"""
Per-World Cache

Maps canonical module identifiers to module records for one world.

Within a world there is exactly one instance of a module. Resolution
suspends (file reads, hooks, host imports) before a record exists, so the
slot is reserved with the in-flight load itself: a second request that
arrives while the first is still loading awaits the same load instead of
building a duplicate record.

Entries are never removed. A failed load stays failed and re-raises for
every later request.
"""

import asyncio
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from .records import ModuleRecord


class WorldCache:
    """Identifier -> module record, owned by exactly one world"""

    def __init__(self):
        self._entries: Dict[str, asyncio.Future] = {}
        self._stats = {'hits': 0, 'misses': 0}

    async def get_or_create(
        self,
        identifier: str,
        factory: Callable[[], Awaitable['ModuleRecord']],
    ) -> 'ModuleRecord':
        """
        Return the record for identifier, creating it on first request.

        Args:
            identifier: Canonical module identifier
            factory: Coroutine function that loads and builds the record

        Returns:
            The one ModuleRecord for identifier in this world
        """
        entry = self._entries.get(identifier)

        if entry is None:
            self._stats['misses'] += 1
            # Reserve the slot before the first suspension point
            entry = asyncio.ensure_future(factory())
            self._entries[identifier] = entry
        else:
            self._stats['hits'] += 1

        # One waiter being cancelled must not cancel the shared load
        return await asyncio.shield(entry)

    def peek(self, identifier: str) -> Optional['ModuleRecord']:
        """Get a loaded record without waiting, None if absent or not ready"""
        entry = self._entries.get(identifier)
        if entry is None or not entry.done() or entry.cancelled():
            return None
        if entry.exception() is not None:
            return None
        return entry.result()

    def identifiers(self) -> List[str]:
        """All identifiers ever requested, in request order"""
        return list(self._entries)

    def stats(self) -> Dict[str, int]:
        """
        Get cache statistics.

        Returns:
            Dict with 'hits', 'misses', 'size'
        """
        return {
            'hits': self._stats['hits'],
            'misses': self._stats['misses'],
            'size': len(self._entries),
        }

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._entries

    def __len__(self) -> int:
        return len(self._entries)
