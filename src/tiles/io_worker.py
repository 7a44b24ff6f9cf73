"""Background disk/network I/O for tiles.

TileIoWorker runs an asyncio loop in its own thread so the GUI thread never
waits on disk reads, image decoding or HTTP. Requests are submitted from the
GUI thread; results are queued as completion records and applied by the GUI
thread in arrival order (see TileLoader.process_completions).
"""

from __future__ import annotations

import asyncio
import functools
import io
import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp
from PIL import Image

from infrastructure.http.client import is_success, make_http_session
from shared.constants import TILE_DIR_MODE, TILE_FILE_MODE

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from domain.models import ViewerSettings
    from tiles.key import TileKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiskReadResult:
    """Outcome of reading a tile file; ``image`` is None if missing or undecodable."""

    key: TileKey
    generation: int
    image: Image.Image | None


@dataclass(frozen=True)
class FetchResult:
    """Outcome of an HTTP tile fetch."""

    key: TileKey
    generation: int
    ok: bool
    status: int | None = None
    image: Image.Image | None = None
    written: bool = False
    cancelled: bool = False


Completion = DiskReadResult | FetchResult


def decode_tile(data: bytes) -> Image.Image | None:
    """Decode tile bytes fully into memory, or None if Pillow cannot read them."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    # Pillow плагины бросают что угодно на битых данных (SyntaxError, struct.error...)
    except Exception as e:
        logger.debug('Tile decode failed: %s', e)
        return None
    return image


def read_tile_file(path: Path) -> Image.Image | None:
    """Read and decode a cached tile file."""
    try:
        data = path.read_bytes()
    except OSError:
        return None
    return decode_tile(data)


def write_tile_file(path: Path, data: bytes) -> bool:
    """Write tile bytes, creating parent directories on demand.

    Returns:
        False if the directory or file could not be written.
    """
    folder = path.parent
    try:
        folder.mkdir(mode=TILE_DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        logger.warning('Error creating tile download directory %s: %s', folder, e)
        return False
    try:
        path.write_bytes(data)
        os.chmod(path, TILE_FILE_MODE)
    except OSError as e:
        logger.warning('Error writing tile %s: %s', path, e)
        return False
    return True


def store_tile(path: Path, data: bytes) -> tuple[bool, Image.Image | None]:
    """Decode downloaded bytes and persist them if they are a valid image.

    Undecodable bodies are not written so a broken response cannot poison
    the disk cache.

    Returns:
        Tuple (written, image).
    """
    image = decode_tile(data)
    if image is None:
        return False, None
    return write_tile_file(path, data), image


async def fetch_tile(
    session: aiohttp.ClientSession,
    key: TileKey,
    url: str,
    path: Path,
    generation: int,
) -> FetchResult:
    """GET one tile, store it on disk and decode it.

    Transport errors, timeouts and non-2xx responses yield ``ok=False``.
    """
    try:
        async with session.get(url) as resp:
            status = resp.status
            logger.debug('%s: %d %s', key, status, resp.reason)
            if not is_success(status):
                return FetchResult(key, generation, ok=False, status=status)
            body = await resp.read()
    except (asyncio.TimeoutError, aiohttp.ClientError) as e:
        logger.debug('%s: request failed: %s', key, e)
        return FetchResult(key, generation, ok=False)

    written, image = await asyncio.to_thread(store_tile, path, body)
    if image is None:
        logger.debug('%s: response body is not an image', key)
        return FetchResult(key, generation, ok=False, status=status)
    return FetchResult(
        key, generation, ok=True, status=status, image=image, written=written
    )


class TileIoWorker:
    """Thread with its own event loop for tile reads and fetches.

    Features:
    - Thread-safe submit_read / submit_fetch / abort_fetches
    - Per-host connection cap enforced by the HTTP session
    - Completions delivered through a queue, in arrival order

    Usage:
        worker = TileIoWorker(settings)
        worker.start()
        worker.submit_read(key, path, generation)
        for completion in worker.drain():
            ...
        worker.stop()
    """

    def __init__(
        self,
        settings: ViewerSettings,
        session_factory: Callable[[ViewerSettings], aiohttp.ClientSession] = make_http_session,
    ) -> None:
        self._settings = settings
        self._session_factory = session_factory
        self._completions: queue.Queue[Completion] = queue.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._session: aiohttp.ClientSession | None = None
        # Loop-thread only
        self._fetch_tasks: set[asyncio.Task] = set()
        self._read_tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the I/O thread and wait until its session is ready."""
        if self._thread is not None:
            return
        self._ready.clear()
        self._thread = threading.Thread(
            target=self._run,
            name='tile-io',
            daemon=True,
        )
        self._thread.start()
        self._ready.wait()
        if self._loop is None:
            self._thread.join()
            self._thread = None
            msg = 'TileIoWorker failed to start'
            raise RuntimeError(msg)
        logger.info(
            'TileIoWorker started (max %d connections per host)',
            self._settings.max_conns_per_host,
        )

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel everything in flight and join the I/O thread."""
        if self._thread is None or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            logger.warning('TileIoWorker: thread did not stop in %.1fs', timeout)
        self._thread = None
        self._loop = None
        logger.info('TileIoWorker stopped')

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            self._session = loop.run_until_complete(self._open_session())
        except Exception:
            logger.exception('TileIoWorker: failed to create HTTP session')
            loop.close()
            self._ready.set()
            return
        self._loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            loop.run_until_complete(self._shutdown())
            loop.close()

    async def _open_session(self) -> aiohttp.ClientSession:
        return self._session_factory(self._settings)

    async def _shutdown(self) -> None:
        tasks = [*self._fetch_tasks, *self._read_tasks]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._session is not None:
            await self._session.close()
            self._session = None
        await asyncio.get_running_loop().shutdown_default_executor()

    # ------------------------------------------------------------------
    # Submission API (any thread)
    # ------------------------------------------------------------------

    def _call_soon(self, callback: Callable[..., object], *args: object) -> None:
        if self._loop is None:
            msg = 'TileIoWorker is not running'
            raise RuntimeError(msg)
        self._loop.call_soon_threadsafe(callback, *args)

    def submit_read(self, key: TileKey, path: Path, generation: int) -> None:
        """Read and decode ``path`` asynchronously."""
        self._call_soon(self._start_read, key, path, generation)

    def submit_fetch(self, key: TileKey, url: str, path: Path, generation: int) -> None:
        """Download ``url`` into ``path`` asynchronously."""
        self._call_soon(self._start_fetch, key, url, path, generation)

    def abort_fetches(self) -> None:
        """Cancel every HTTP request submitted so far. Disk reads keep running."""
        self._call_soon(self._abort_fetches)

    def drain(self, block: bool = False, timeout: float | None = None) -> list[Completion]:
        """Take all queued completions.

        Args:
            block: Wait for at least one completion.
            timeout: Maximum wait when ``block`` is set.
        """
        out: list[Completion] = []
        if block:
            try:
                out.append(self._completions.get(timeout=timeout))
            except queue.Empty:
                return out
        while True:
            try:
                out.append(self._completions.get_nowait())
            except queue.Empty:
                return out

    # ------------------------------------------------------------------
    # Loop-thread internals
    # ------------------------------------------------------------------

    def _track(self, tasks: set[asyncio.Task], task: asyncio.Task) -> None:
        tasks.add(task)
        task.add_done_callback(tasks.discard)

    def _start_read(self, key: TileKey, path: Path, generation: int) -> None:
        assert self._loop is not None
        self._track(self._read_tasks, self._loop.create_task(self._read(key, path, generation)))

    def _start_fetch(self, key: TileKey, url: str, path: Path, generation: int) -> None:
        assert self._loop is not None
        task = self._loop.create_task(self._fetch(key, url, path, generation))
        # Задача может быть отменена ещё до первого шага корутины
        task.add_done_callback(functools.partial(self._fetch_done, key, generation))
        self._track(self._fetch_tasks, task)

    def _fetch_done(self, key: TileKey, generation: int, task: asyncio.Task) -> None:
        if task.cancelled():
            self._completions.put(FetchResult(key, generation, ok=False, cancelled=True))

    def _abort_fetches(self) -> None:
        if self._fetch_tasks:
            logger.debug('Aborting %d tile requests', len(self._fetch_tasks))
        for task in list(self._fetch_tasks):
            task.cancel()

    async def _read(self, key: TileKey, path: Path, generation: int) -> None:
        try:
            image = await asyncio.to_thread(read_tile_file, path)
        except Exception:
            logger.exception('%s: disk read failed', key)
            image = None
        # Завершение ставится в очередь всегда, иначе ключ зависнет у загрузчика
        self._completions.put(DiskReadResult(key, generation, image))

    async def _fetch(self, key: TileKey, url: str, path: Path, generation: int) -> None:
        assert self._session is not None
        try:
            result = await fetch_tile(self._session, key, url, path, generation)
        except Exception:
            logger.exception('%s: tile fetch failed', key)
            result = FetchResult(key, generation, ok=False)
        self._completions.put(result)
