"""In-memory tile cache with generation-based purge.

This module provides TileCache class for keeping decoded tiles of the
visible area and its surroundings. Entries are not aged on lookup: the
paint pass refreshes an entry's generation when the tile is actually drawn,
and a purge after the pass drops tiles that were not drawn recently.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shared.constants import CACHE_MAX_GENERATION_AGE, CACHE_PURGE_THRESHOLD
from shared.diagnostics import log_memory_usage

if TYPE_CHECKING:
    from PIL import Image

    from tiles.key import TileKey

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Decoded tile and the generation it was last painted or inserted in."""

    image: Image.Image
    last_used_generation: int


@dataclass
class CacheStats:
    """Statistics about the tile cache."""

    total_tiles: int
    tiles_by_zoom: dict[int, int]
    tiles_by_source: dict[str, int]


class TileCache:
    """Memory-resident map from TileKey to decoded image.

    Features:
    - O(1) get/put without per-access bookkeeping
    - Generation refresh only on paint (touch)
    - Coarse purge once the entry count exceeds a threshold

    Usage:
        cache = TileCache()
        cache.put(key, image, generation=state.generation)
        image = cache.get(key)
        cache.touch(key, state.generation)
        cache.purge(state.generation)
    """

    def __init__(
        self,
        purge_threshold: int = CACHE_PURGE_THRESHOLD,
        max_age: int = CACHE_MAX_GENERATION_AGE,
    ) -> None:
        """Initialize tile cache.

        Args:
            purge_threshold: Purge only when more entries than this are resident.
            max_age: Entries more than this many generations old are purged.
        """
        self.purge_threshold = purge_threshold
        self.max_age = max_age
        self._entries: dict[TileKey, CacheEntry] = {}

    def get(self, key: TileKey) -> Image.Image | None:
        """Decoded image for ``key`` or None."""
        entry = self.entry(key)
        return entry.image if entry is not None else None

    def entry(self, key: TileKey) -> CacheEntry | None:
        return self._entries.get(key)

    def put(self, key: TileKey, image: Image.Image, generation: int) -> None:
        """Insert or replace a tile, stamping it with ``generation``."""
        self._entries[key] = CacheEntry(image=image, last_used_generation=generation)

    def touch(self, key: TileKey, generation: int) -> bool:
        """Mark a tile as painted in ``generation``.

        Returns:
            True if the tile is resident.
        """
        entry = self.entry(key)
        if entry is None:
            return False
        entry.last_used_generation = max(entry.last_used_generation, generation)
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def purge(self, current_generation: int) -> int:
        """Drop stale tiles once the cache is over its threshold.

        Removes every entry with ``current_generation - last_used_generation``
        greater than ``max_age``. Does nothing while the cache holds no more
        than ``purge_threshold`` entries.

        Returns:
            Number of entries removed.
        """
        if len(self._entries) <= self.purge_threshold:
            return 0

        logger.debug('Purging tiles')
        stale = [
            key
            for key, entry in self._entries.items()
            if current_generation - entry.last_used_generation > self.max_age
        ]
        for key in stale:
            del self._entries[key]
        stats = self.stats()
        logger.debug(
            'Removed %d tiles, left %d (by zoom: %s)',
            len(stale),
            stats.total_tiles,
            stats.tiles_by_zoom,
        )
        if stale:
            log_memory_usage('after tile purge')
        return len(stale)

    def stats(self) -> CacheStats:
        """Get cache statistics grouped by zoom and source."""
        by_zoom = Counter(key.zoom for key in self._entries)
        by_source = Counter(key.source_id for key in self._entries)
        return CacheStats(
            total_tiles=len(self._entries),
            tiles_by_zoom=dict(by_zoom),
            tiles_by_source=dict(by_source),
        )
