"""
ServiceWatch - Detail Cache

In-memory cache for service, port and user detail payloads.

One region per entity kind, each a plain mapping from CacheKey to the last
successfully fetched value. No TTL and no eviction: entries stay until a
forced refresh overwrites them or a region is cleared.
"""

import logging
from typing import Any, Dict, Optional

from servicewatch.models.keys import CacheKey, EntityKind

logger = logging.getLogger(__name__)


class DetailCache:
    """
    Three independent key/value regions for detail payloads.

    Writes are full overwrites, so concurrent fetches on one event loop can
    read and write without locking. The last write to a key wins.
    """

    def __init__(self):
        self._regions: Dict[EntityKind, Dict[CacheKey, Any]] = {
            kind: {} for kind in EntityKind
        }

    def _region(self, kind: EntityKind, key: Optional[CacheKey] = None) -> Dict[CacheKey, Any]:
        if key is not None and key.kind is not kind:
            raise ValueError(f"Key {key.describe()} does not belong to region {kind.value}")
        return self._regions[kind]

    def get(self, kind: EntityKind, key: CacheKey) -> Optional[Any]:
        """Return the cached value for key, or None when absent."""
        return self._region(kind, key).get(key)

    def contains(self, kind: EntityKind, key: CacheKey) -> bool:
        return key in self._region(kind, key)

    def put(self, kind: EntityKind, key: CacheKey, value: Any) -> None:
        """Store value under key, replacing any previous entry entirely."""
        self._region(kind, key)[key] = value
        logger.debug(f"Cached {key.describe()}")

    def clear(self, kind: EntityKind) -> None:
        """Drop every entry in one region."""
        region = self._region(kind)
        dropped = len(region)
        region.clear()
        logger.debug(f"Cleared {dropped} {kind.value} entries")

    def clear_all(self) -> None:
        """Drop every entry in every region."""
        for kind in EntityKind:
            self.clear(kind)
        logger.info("[OK] Detail cache cleared")

    def size(self, kind: EntityKind) -> int:
        return len(self._region(kind))

    def get_stats(self) -> Dict[str, int]:
        """Entry count per region, keyed by kind value."""
        return {kind.value: len(region) for kind, region in self._regions.items()}
