"""Viewport state, input handling and paint planning."""
from viewer.controller import TilePlacement, ViewportController
from viewer.scale_bar import ScaleBar, compute_scale_bar
from viewer.state import CursorMarker, TileRange, ViewportState, visible_tiles

__all__ = [
    'CursorMarker',
    'ScaleBar',
    'TilePlacement',
    'TileRange',
    'ViewportController',
    'ViewportState',
    'compute_scale_bar',
    'visible_tiles',
]
