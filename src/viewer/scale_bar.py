from __future__ import annotations

import math
from dataclasses import dataclass

from shared.constants import (
    EQUATOR_HALFLENGTH,
    SCALE_BAR_STRETCH2_MAX_PX,
    SCALE_BAR_STRETCH5_MAX_PX,
    TILE_SIZE,
)


@dataclass(frozen=True)
class ScaleBar:
    """Scale bar of a round distance."""

    width_px: int
    distance_m: float
    label: str


def meters_per_pixel(zoom: int, center_y: float) -> float:
    """Ground resolution at the viewport center's latitude."""
    half = TILE_SIZE * 2**zoom / 2
    # 1/cos(lat) == cosh(mercator y / R)
    k = math.cosh(math.pi * abs(half - center_y) / half)
    return EQUATOR_HALFLENGTH / half / k


def compute_scale_bar(zoom: int, center_y: float) -> ScaleBar:
    """
    Round distance (1, 2 or 5 × 10^n m) and its length in pixels.

    The bar for 10^n m is stretched 5× when shorter than 20 px and 2× when
    shorter than 50 px.
    """
    scale = meters_per_pixel(zoom, center_y)
    distance = 10 ** math.floor(math.log10(scale * 100))
    width = distance / scale
    if width <= SCALE_BAR_STRETCH5_MAX_PX:
        distance *= 5
        width *= 5
    elif width <= SCALE_BAR_STRETCH2_MAX_PX:
        distance *= 2
        width *= 2

    if distance >= 1000:
        label = f'{distance / 1000:g} km'
    else:
        label = f'{distance:g} m'
    return ScaleBar(width_px=math.floor(width), distance_m=float(distance), label=label)
