"""Viewport state machine: pan, zoom, map switching and the paint pass.

ViewportController is the single owner of ViewportState and is driven from
the GUI thread only. Every zoom or map change advances the generation,
aborts outstanding downloads and clears the loading set.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from shared.constants import (
    CLICK_THRESHOLD_PX,
    CURSOR_HIDE_DELAY_S,
    DIRECTION_DELTAS,
    MAX_ZOOM,
    MIN_ZOOM,
    Direction,
)
from shared.events import ViewerEvent
from tiles.key import TileKey
from tiles.pyramid import placeholder_for
from viewer.scale_bar import ScaleBar, compute_scale_bar
from viewer.state import CursorMarker, visible_tiles

if TYPE_CHECKING:
    from collections.abc import Callable

    from PIL import Image

    from catalog.registry import MapSourceInfo, MapSourceRegistry
    from geo.projections import ProjectionService
    from shared.events import Observable
    from tiles.cache import TileCache
    from tiles.loader import TileLoader
    from viewer.state import ViewportState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TilePlacement:
    """One screen cell of the paint pass.

    ``image`` is the exact tile, an upscaled ancestor (``placeholder``) or
    None when nothing is available yet.
    """

    key: TileKey
    draw_x: int
    draw_y: int
    image: Image.Image | None
    placeholder: bool = False


class ViewportController:
    """Applies user input to the viewport and plans what to paint."""

    def __init__(
        self,
        state: ViewportState,
        registry: MapSourceRegistry,
        projections: ProjectionService,
        cache: TileCache,
        loader: TileLoader,
        events: Observable,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if state.map_id not in registry:
            msg = f'unknown map source {state.map_id!r}'
            raise KeyError(msg)
        self.state = state
        self._registry = registry
        self._projections = projections
        self._cache = cache
        self._loader = loader
        self._events = events
        self._clock = clock

    @property
    def source(self) -> MapSourceInfo:
        source = self._registry.get(self.state.map_id)
        assert source is not None
        return source

    def _repaint(self) -> None:
        self._events.notify_observers(ViewerEvent.REPAINT_REQUESTED)

    # ------------------------------------------------------------------
    # Pan
    # ------------------------------------------------------------------

    def pan(self, dx: int, dy: int) -> None:
        self.state.center_x += dx
        self.state.center_y += dy
        self._repaint()

    def pan_direction(self, direction: Direction) -> None:
        """Nudge the map by PAN_STEP_PX in ``direction``."""
        self.pan(*DIRECTION_DELTAS[direction])

    def press(self, x: int, y: int) -> None:
        """Button pressed at viewport position ``(x, y)``."""
        state = self.state
        state.click_x = x
        state.click_y = y
        state.anchor_x = state.center_x + x
        state.anchor_y = state.center_y + y
        state.button_pressed = True

    def motion(self, x: int, y: int) -> bool:
        """Pointer moved; drags the map while the button is held."""
        state = self.state
        if not state.button_pressed:
            return False
        state.center_x = state.anchor_x - x
        state.center_y = state.anchor_y - y
        self._repaint()
        return True

    def release(self, x: int, y: int, width: int, height: int) -> bool:
        """Button released; a short click places the cursor marker.

        Returns:
            True if a marker was placed.
        """
        state = self.state
        state.button_pressed = False
        placed = False
        if abs(x - state.click_x) < CLICK_THRESHOLD_PX and abs(y - state.click_y) < CLICK_THRESHOLD_PX:
            k = 2 ** (MAX_ZOOM - state.zoom)
            state.cursor = CursorMarker(
                x=(x - width // 2 + state.center_x) * k,
                y=(y - height // 2 + state.center_y) * k,
                expires_at=self._clock() + CURSOR_HIDE_DELAY_S,
            )
            placed = True
        self._repaint()
        return placed

    # ------------------------------------------------------------------
    # Cursor marker
    # ------------------------------------------------------------------

    def cursor_visible(self, now: float | None = None) -> bool:
        cursor = self.state.cursor
        if cursor is None:
            return False
        return (self._clock() if now is None else now) < cursor.expires_at

    def expire_cursor(self, now: float | None = None) -> bool:
        """Drop an expired marker. Returns True if one was removed."""
        if self.state.cursor is None or self.cursor_visible(now):
            return False
        self.state.cursor = None
        self._repaint()
        return True

    def cursor_screen_position(self, width: int, height: int) -> tuple[int, int] | None:
        """Marker position in viewport pixels at the current zoom."""
        state = self.state
        if state.cursor is None:
            return None
        k = 2 ** (MAX_ZOOM - state.zoom)
        return (
            state.cursor.x // k + width // 2 - state.center_x,
            state.cursor.y // k + height // 2 - state.center_y,
        )

    # ------------------------------------------------------------------
    # Zoom / map source
    # ------------------------------------------------------------------

    def advance_generation(self) -> None:
        """Invalidate in-flight work: abort downloads, clear the loading set."""
        self.state.generation += 1
        self._loader.cancel_all()

    def change_zoom(self, dx: int = 0, dy: int = 0, zoom_in: bool = True) -> bool:
        """Zoom one level keeping the point at offset ``(dx, dy)`` from the center fixed.

        Returns:
            False if already at the zoom limit (nothing changes).
        """
        state = self.state
        if zoom_in:
            if state.zoom >= MAX_ZOOM:
                return False
            state.zoom += 1
            state.center_x = (state.center_x + dx) * 2 - dx
            state.center_y = (state.center_y + dy) * 2 - dy
        else:
            if state.zoom <= MIN_ZOOM:
                return False
            state.zoom -= 1
            state.center_x = (state.center_x + dx) // 2 - dx
            state.center_y = (state.center_y + dy) // 2 - dy

        self.advance_generation()
        logger.info('Zoom changed to %d', state.zoom)
        self._events.notify_observers(ViewerEvent.ZOOM_CHANGED, {'zoom': state.zoom})
        self._repaint()
        return True

    def scroll(self, x: int, y: int, width: int, height: int, zoom_in: bool) -> bool:
        """Wheel zoom anchored at the pointer position."""
        return self.change_zoom(x - width // 2, y - height // 2, zoom_in)

    def change_map(self, map_id: str) -> bool:
        """Switch the active map source, reprojecting the center if needed.

        Returns:
            False for an unknown id.
        """
        new_source = self._registry.get(map_id)
        if new_source is None:
            logger.debug('Unknown map %r', map_id)
            return False

        state = self.state
        old_source = self.source
        if new_source.projection != old_source.projection:
            state.center_x, state.center_y = self._projections.reproject_center(
                state.center_x,
                state.center_y,
                state.zoom,
                old_source.projection,
                new_source.projection,
            )

        state.map_id = new_source.id
        self.advance_generation()
        logger.info('Map changed to %s', new_source.id)
        self._events.notify_observers(
            ViewerEvent.MAP_CHANGED, {'title': new_source.title}
        )
        self._repaint()
        return True

    # ------------------------------------------------------------------
    # Paint pass
    # ------------------------------------------------------------------

    def draw_plan(self, width: int, height: int) -> list[TilePlacement]:
        """Decide what to paint in every visible cell.

        Cached tiles are marked as used in the current generation; missing
        tiles are requested from the loader and get an ancestor placeholder
        when one is cached. The cache is purged after the pass.
        """
        state = self.state
        generation = state.generation
        placements: list[TilePlacement] = []
        for tile_x, tile_y, draw_x, draw_y in visible_tiles(state, width, height).cells():
            key = TileKey(state.map_id, state.zoom, tile_x, tile_y)
            image = self._cache.get(key)
            if image is not None:
                self._cache.touch(key, generation)
                placements.append(TilePlacement(key, draw_x, draw_y, image))
                continue

            self._loader.request(key, generation)
            fallback = placeholder_for(self._cache, key)
            placements.append(
                TilePlacement(key, draw_x, draw_y, fallback, placeholder=fallback is not None)
            )

        self._cache.purge(generation)
        return placements

    def process_completions(self) -> int:
        """Apply finished disk reads and downloads."""
        return self._loader.process_completions(self.state.generation)

    def scale_bar(self) -> ScaleBar:
        return compute_scale_bar(self.state.zoom, self.state.center_y)
