"""Tile identity and its disk-cache path."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, order=True)
class TileKey:
    """One tile of one map source: ``(source_id, zoom, x, y)``.

    Hashes by value, so it serves directly as the memory-cache and
    loading-set key. The path form is derived, never parsed back.
    """

    source_id: str
    zoom: int
    x: int
    y: int

    def __str__(self) -> str:
        return f'{self.source_id}/{self.zoom}/{self.x}/{self.y}'

    def is_valid(self) -> bool:
        """True when x and y lie inside ``[0, 2**zoom - 1]``."""
        if self.zoom < 0:
            return False
        limit = 2**self.zoom
        return 0 <= self.x < limit and 0 <= self.y < limit

    def parent(self, levels: int = 1) -> TileKey:
        """Ancestor ``levels`` zoom levels up that contains this tile."""
        if levels < 0 or levels > self.zoom:
            msg = f'cannot go {levels} levels up from zoom {self.zoom}'
            raise ValueError(msg)
        return TileKey(
            self.source_id, self.zoom - levels, self.x >> levels, self.y >> levels
        )

    def relative_path(self, tile_format: str) -> Path:
        return Path(self.source_id, str(self.zoom), str(self.x), f'{self.y}.{tile_format}')

    def path(self, cache_root: str | Path, tile_format: str) -> Path:
        """``<cache_root>/<source_id>/<zoom>/<x>/<y>.<format>``."""
        return Path(cache_root) / self.relative_path(tile_format)
