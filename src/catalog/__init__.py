"""Map-source catalog loaded from plugin modules."""
from catalog.registry import (
    MapSourceInfo,
    MapSourceRegistry,
    load_registry,
    source_from_module,
)

__all__ = [
    'MapSourceInfo',
    'MapSourceRegistry',
    'load_registry',
    'source_from_module',
]
