"""Tile acquisition: memory cache -> disk cache -> network.

TileLoader lives on the GUI thread. It submits work to a TileIoWorker and
applies the worker's completions back to the TileCache and the loading set.
All of its state is touched only from the GUI thread.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from shared.errors import ConfigurationError
from shared.events import ViewerEvent
from tiles.io_worker import Completion, DiskReadResult, FetchResult

if TYPE_CHECKING:
    from catalog.registry import MapSourceRegistry
    from shared.events import Observable
    from tiles.cache import TileCache
    from tiles.key import TileKey

logger = logging.getLogger(__name__)


class TileIo(Protocol):
    """What the loader needs from the I/O worker."""

    def submit_read(self, key: TileKey, path: Path, generation: int) -> None: ...

    def submit_fetch(self, key: TileKey, url: str, path: Path, generation: int) -> None: ...

    def abort_fetches(self) -> None: ...

    def drain(self, block: bool = False, timeout: float | None = None) -> list[Completion]: ...


class TileLoader:
    """Disk -> network fallback chain with in-flight de-duplication.

    - A missing tile is first read from disk.
    - If the disk has nothing usable, one HTTP request is issued; the key sits
      in the loading set until the response arrives.
    - Successful downloads are written to disk and inserted into the cache.
    """

    def __init__(
        self,
        registry: MapSourceRegistry,
        cache: TileCache,
        io: TileIo,
        cache_root: str | Path,
        events: Observable,
    ) -> None:
        self._registry = registry
        self._cache = cache
        self._io = io
        self._cache_root = Path(cache_root)
        self._events = events
        self._loading: set[TileKey] = set()
        # Disk reads in flight: key -> generation of the latest read
        self._reading: dict[TileKey, int] = {}

    @property
    def loading_count(self) -> int:
        return len(self._loading)

    def is_loading(self, key: TileKey) -> bool:
        return key in self._loading

    def tile_path(self, key: TileKey) -> Path:
        """Disk-cache path of ``key``."""
        source = self._registry.get(key.source_id)
        if source is None:
            msg = f'unknown map source {key.source_id!r}'
            raise KeyError(msg)
        return key.path(self._cache_root, source.tile_format)

    def request(self, key: TileKey, generation: int) -> bool:
        """Start acquiring a tile that is not in the memory cache.

        Non-blocking. Returns False when nothing was submitted (already cached,
        outside the world grid, or a disk read for this generation is pending).
        """
        if key in self._cache or not key.is_valid():
            return False
        if self._reading.get(key) == generation:
            return False
        self._reading[key] = generation
        self._io.submit_read(key, self.tile_path(key), generation)
        return True

    def _emit_loading(self) -> None:
        self._events.notify_observers(
            ViewerEvent.LOADING, {'count': len(self._loading)}
        )

    def _request_repaint(self) -> None:
        self._events.notify_observers(ViewerEvent.REPAINT_REQUESTED)

    def _start_fetch(self, key: TileKey, generation: int) -> None:
        if key in self._loading:
            return
        source = self._registry.get(key.source_id)
        if source is None:
            return
        try:
            url = source.url(key.x, key.y, key.zoom)
        except ConfigurationError as e:
            # Тайл считается недоступным; остальные завершения пачки применяются
            logger.error('Cannot build URL for %s: %s', key, e)
            return
        self._io.submit_fetch(
            key, url, key.path(self._cache_root, source.tile_format), generation
        )
        self._loading.add(key)
        self._emit_loading()

    def apply(self, completion: Completion, generation: int) -> None:
        """Apply one worker completion; ``generation`` is the current one."""
        if isinstance(completion, DiskReadResult):
            self._apply_disk_read(completion, generation)
        elif isinstance(completion, FetchResult):
            self._apply_fetch(completion, generation)

    def _apply_disk_read(self, result: DiskReadResult, generation: int) -> None:
        if self._reading.get(result.key) == result.generation:
            del self._reading[result.key]

        if result.image is not None:
            # Stale reads still land in the cache, stamped with the
            # generation that asked for them so they age out first.
            self._cache.put(result.key, result.image, result.generation)
            if result.generation == generation:
                self._request_repaint()
            return

        if result.generation != generation:
            return
        self._start_fetch(result.key, generation)

    def _apply_fetch(self, result: FetchResult, generation: int) -> None:
        if result.image is not None:
            self._cache.put(result.key, result.image, result.generation)
        if result.ok:
            self._request_repaint()
        elif not result.cancelled:
            logger.debug('Tile %s unavailable (status %s)', result.key, result.status)

        # After a generation change the loading set was cleared; a late
        # completion must not remove a newer request for the same key.
        if result.generation == generation and result.key in self._loading:
            self._loading.discard(result.key)
            self._emit_loading()

    def process_completions(self, generation: int) -> int:
        """Apply every completion queued by the worker, in arrival order."""
        completions = self._io.drain()
        for completion in completions:
            self.apply(completion, generation)
        return len(completions)

    def cancel_all(self) -> None:
        """Abort outstanding downloads and clear the loading set."""
        self._io.abort_fetches()
        had_loading = bool(self._loading)
        self._loading.clear()
        if had_loading:
            self._emit_loading()
