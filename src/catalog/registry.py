"""Map-source catalog.

Every ``*.py`` file in the maps directory describes one tile provider. The
file stem is the source id; the module must define:

- ``url(x, y, zoom) -> str``: tile URL
- ``title``: human readable name
- ``format``: tile file extension (``png``, ``jpg``...)
- ``proj``: EPSG code, 3857 or 3395

and may define ``key``, a one-character menu accelerator. The catalog is
resolved once at startup into an immutable table; afterwards only ``url`` is
called.
"""

from __future__ import annotations

import importlib.util
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from geo.projections import Projection
from shared.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from types import ModuleType

logger = logging.getLogger(__name__)

_PLUGIN_MODULE_PREFIX = 'mapius_source_'


@dataclass(frozen=True)
class MapSourceInfo:
    """Immutable description of one tile provider."""

    id: str
    title: str
    tile_format: str
    projection: Projection
    url_fn: Callable[[int, int, int], str] = field(repr=False, compare=False)
    accel_key: str | None = None

    def url(self, x: int, y: int, zoom: int) -> str:
        """Tile URL for ``(x, y, zoom)``.

        Raises:
            ConfigurationError: the source's url function is broken.

        """
        try:
            value = self.url_fn(x, y, zoom)
        except Exception as e:
            msg = f'url({x}, {y}, {zoom}) failed: {e}'
            raise ConfigurationError(msg, source=self.id) from e
        if not isinstance(value, str):
            msg = f'url() returned {type(value).__name__}, expected str'
            raise ConfigurationError(msg, source=self.id)
        return value


class MapSourceRegistry:
    """Read-only lookup of map sources by id."""

    def __init__(
        self,
        sources: Iterable[MapSourceInfo],
        default_id: str | None = None,
    ) -> None:
        table: dict[str, MapSourceInfo] = {}
        for info in sources:
            if info.id in table:
                msg = 'duplicate map source id'
                raise ConfigurationError(msg, source=info.id)
            table[info.id] = info
        if not table:
            msg = 'Maps not found'
            raise ConfigurationError(msg)

        self._sources = MappingProxyType(table)
        if default_id is not None and default_id in table:
            self._default = table[default_id]
        else:
            self._default = next(iter(table.values()))

    def get(self, source_id: str) -> MapSourceInfo | None:
        return self._sources.get(source_id)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[MapSourceInfo]:
        return iter(self._sources.values())

    @property
    def default(self) -> MapSourceInfo:
        return self._default

    def ordered(self) -> list[MapSourceInfo]:
        """Sources sorted by title for menus."""
        return sorted(self._sources.values(), key=lambda s: s.title)


def _import_plugin(path: Path) -> ModuleType:
    module_name = f'{_PLUGIN_MODULE_PREFIX}{path.stem}'
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        msg = 'cannot create import spec'
        raise ConfigurationError(msg, source=str(path))
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        msg = f'error loading map: {e}'
        raise ConfigurationError(msg, source=str(path)) from e
    return module


def _require_str(module: ModuleType, name: str, path: Path) -> str:
    value = getattr(module, name, None)
    if not isinstance(value, str) or not value:
        msg = f"no '{name}' for map"
        raise ConfigurationError(msg, source=str(path))
    return value


def source_from_module(source_id: str, module: ModuleType, path: Path) -> MapSourceInfo:
    """Validate a plugin module and build its :class:`MapSourceInfo`."""
    url_fn = getattr(module, 'url', None)
    if not callable(url_fn):
        msg = "no 'url' function for map"
        raise ConfigurationError(msg, source=str(path))

    title = _require_str(module, 'title', path)
    tile_format = _require_str(module, 'format', path).lstrip('.')

    if not hasattr(module, 'proj'):
        msg = 'no projection for map'
        raise ConfigurationError(msg, source=str(path))
    try:
        projection = Projection.from_code(module.proj)
    except ConfigurationError as e:
        raise ConfigurationError(str(e), source=str(path)) from None

    accel_key = getattr(module, 'key', None)
    if accel_key is not None and (not isinstance(accel_key, str) or len(accel_key) != 1):
        logger.warning("Ignoring accelerator %r for map '%s'", accel_key, source_id)
        accel_key = None

    info = MapSourceInfo(
        id=source_id,
        title=title,
        tile_format=tile_format,
        projection=projection,
        url_fn=url_fn,
        accel_key=accel_key,
    )
    # Пробный вызов: сломанная функция url должна обнаружиться при запуске
    info.url(0, 0, 0)
    return info


def load_registry(maps_dir: str | Path, default_id: str | None = None) -> MapSourceRegistry:
    """Load every map plugin in ``maps_dir``.

    Raises:
        ConfigurationError: directory missing, a plugin is malformed, or no
            plugins were found.

    """
    maps_dir = Path(maps_dir)
    if not maps_dir.is_dir():
        msg = 'error opening maps directory'
        raise ConfigurationError(msg, source=str(maps_dir))

    logger.debug('Loading maps from %s', maps_dir)
    sources = []
    for path in sorted(maps_dir.glob('*.py')):
        if path.stem.startswith('_'):
            continue
        logger.debug('  %s', path.stem)
        module = _import_plugin(path)
        sources.append(source_from_module(path.stem, module, path))

    registry = MapSourceRegistry(sources, default_id=default_id)
    logger.info(
        'Loaded %d map sources, default: %s', len(registry), registry.default.id
    )
    return registry
