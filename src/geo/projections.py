"""Projection service for switching between spherical and ellipsoidal Mercator maps.

Viewport centers live in the full-map pixel space of the current zoom
(world size ``256 * 2**zoom``). To carry a center across map sources with
different projections it is mapped to planar meters, transformed with pyproj
and mapped back to pixels.
"""

from __future__ import annotations

import logging
from enum import IntEnum

from pyproj import Transformer

from shared.constants import (
    EPSG_ELLIPSOIDAL_MERCATOR,
    EPSG_SPHERICAL_MERCATOR,
    EQUATOR_HALFLENGTH,
    TILE_SIZE,
)
from shared.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Projection(IntEnum):
    """Projections a map source may declare, keyed by EPSG code."""

    SPHERICAL_MERCATOR = EPSG_SPHERICAL_MERCATOR
    ELLIPSOIDAL_MERCATOR = EPSG_ELLIPSOIDAL_MERCATOR

    @classmethod
    def from_code(cls, code: object) -> Projection:
        if isinstance(code, bool) or not isinstance(code, int):
            msg = f'projection code must be an EPSG integer, got {code!r}'
            raise ConfigurationError(msg)
        try:
            return cls(code)
        except ValueError:
            msg = f'unknown projection EPSG:{code}'
            raise ConfigurationError(msg) from None

    @property
    def crs(self) -> str:
        return f'EPSG:{self.value}'


def half_world(zoom: int) -> int:
    """Half of the world size in pixels at ``zoom``."""
    return TILE_SIZE * 2**zoom // 2


def pixel_to_planar(px: float, py: float, zoom: int) -> tuple[float, float]:
    """Convert full-map pixel coordinates to planar Mercator meters."""
    half = half_world(zoom)
    x = (px - half) * EQUATOR_HALFLENGTH / half
    y = (half - py) * EQUATOR_HALFLENGTH / half
    return x, y


def planar_to_pixel(x: float, y: float, zoom: int) -> tuple[float, float]:
    """Inverse of :func:`pixel_to_planar`."""
    half = half_world(zoom)
    px = x * half / EQUATOR_HALFLENGTH + half
    py = half - y * half / EQUATOR_HALFLENGTH
    return px, py


class ProjectionService:
    """Forward/inverse transforms between any pair of supported projections.

    Transformers are built lazily and reused; pyproj transformer construction
    is far more expensive than a single point transform.
    """

    def __init__(self) -> None:
        self._transformers: dict[tuple[Projection, Projection], Transformer] = {}

    def _get_transformer(self, src: Projection, dst: Projection) -> Transformer:
        key = (src, dst)
        if key not in self._transformers:
            logger.debug('Building transformer %s -> %s', src.crs, dst.crs)
            self._transformers[key] = Transformer.from_crs(
                src.crs, dst.crs, always_xy=True
            )
        return self._transformers[key]

    def transform(
        self, src: Projection, dst: Projection, x: float, y: float
    ) -> tuple[float, float]:
        """Transform planar coordinates from ``src`` to ``dst``."""
        if src == dst:
            return x, y
        tx, ty = self._get_transformer(src, dst).transform(x, y)
        return float(tx), float(ty)

    def reproject_center(
        self,
        center_x: float,
        center_y: float,
        zoom: int,
        src: Projection,
        dst: Projection,
    ) -> tuple[int, int]:
        """Move a pixel-space center from one projection's map to another's.

        Returns:
            New center rounded to integer pixels.

        """
        if src == dst:
            return round(center_x), round(center_y)
        x, y = pixel_to_planar(center_x, center_y, zoom)
        x, y = self.transform(src, dst, x, y)
        px, py = planar_to_pixel(x, y, zoom)
        return round(px), round(py)
