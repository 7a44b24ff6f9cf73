"""Geo module - map projections and pixel/planar conversions."""

from .projections import (
    Projection,
    ProjectionService,
    pixel_to_planar,
    planar_to_pixel,
)

__all__ = [
    'Projection',
    'ProjectionService',
    'pixel_to_planar',
    'planar_to_pixel',
]
