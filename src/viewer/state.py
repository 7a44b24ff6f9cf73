"""Viewport state and visible tile range."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from shared.constants import MAX_ZOOM, MIN_ZOOM, TILE_SIZE


@dataclass
class CursorMarker:
    """Tapped point in world pixels at MAX_ZOOM resolution."""

    x: int
    y: int
    expires_at: float


@dataclass
class ViewportState:
    """Everything that decides which tiles are on screen.

    ``center_x``/``center_y`` are pixels in the full map of the current zoom
    (world size ``256 * 2**zoom``); any zoom or map change rewrites them.
    """

    map_id: str
    zoom: int = MIN_ZOOM
    center_x: int = TILE_SIZE // 2
    center_y: int = TILE_SIZE // 2
    generation: int = 0

    # Перетаскивание
    button_pressed: bool = False
    click_x: int = 0
    click_y: int = 0
    anchor_x: int = 0
    anchor_y: int = 0

    cursor: CursorMarker | None = None

    def __post_init__(self) -> None:
        if not MIN_ZOOM <= self.zoom <= MAX_ZOOM:
            msg = f'zoom must be in [{MIN_ZOOM}, {MAX_ZOOM}], got {self.zoom}'
            raise ValueError(msg)

    @property
    def world_size(self) -> int:
        return TILE_SIZE * 2**self.zoom

    @property
    def max_tile(self) -> int:
        return 2**self.zoom - 1


@dataclass(frozen=True)
class TileRange:
    """Inclusive tile index range plus the screen offset of tile (0, 0)."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int
    offset_x: int
    offset_y: int

    def __len__(self) -> int:
        if self.max_x < self.min_x or self.max_y < self.min_y:
            return 0
        return (self.max_x - self.min_x + 1) * (self.max_y - self.min_y + 1)

    def cells(self) -> Iterator[tuple[int, int, int, int]]:
        """Yield ``(tile_x, tile_y, draw_x, draw_y)`` row by row."""
        for tile_y in range(self.min_y, self.max_y + 1):
            draw_y = tile_y * TILE_SIZE + self.offset_y
            for tile_x in range(self.min_x, self.max_x + 1):
                yield tile_x, tile_y, tile_x * TILE_SIZE + self.offset_x, draw_y


def visible_tiles(state: ViewportState, width: int, height: int) -> TileRange:
    """Tiles that intersect a ``width`` x ``height`` viewport.

    Indices are clamped to ``[0, 2**zoom - 1]``; an empty range
    (``max < min``) is returned when the viewport is entirely past the map edge.
    """
    half_w = width // 2
    half_h = height // 2
    offset_x = half_w - state.center_x
    offset_y = half_h - state.center_y

    min_x = max(0, (state.center_x - half_w) // TILE_SIZE)
    min_y = max(0, (state.center_y - half_h) // TILE_SIZE)
    max_x = min(state.max_tile, (state.center_x + half_w) // TILE_SIZE)
    max_y = min(state.max_tile, (state.center_y + half_h) // TILE_SIZE)
    return TileRange(min_x, min_y, max_x, max_y, offset_x, offset_y)
