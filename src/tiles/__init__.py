"""Tile acquisition and caching.

This module provides:
- TileKey: identity and disk layout of a tile
- TileCache: in-memory cache with generation-based purge
- TileLoader: memory -> disk -> network fallback chain
- TileIoWorker: background asyncio thread for disk reads and HTTP
- placeholder_for: upscaled ancestor while a tile is loading
"""

from tiles.cache import CacheEntry, CacheStats, TileCache
from tiles.io_worker import DiskReadResult, FetchResult, TileIoWorker
from tiles.key import TileKey
from tiles.loader import TileLoader
from tiles.pyramid import find_ancestor, placeholder_for

__all__ = [
    'CacheEntry',
    'CacheStats',
    'DiskReadResult',
    'FetchResult',
    'TileCache',
    'TileIoWorker',
    'TileKey',
    'TileLoader',
    'find_ancestor',
    'placeholder_for',
]
