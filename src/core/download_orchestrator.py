"""Concurrent tile download orchestration.

A feeder releases tiles through the rate limiter into a small work queue; a
fixed pool of worker threads checks the cache, fetches with retry and backoff,
optionally converts, and stores each tile. Cancellation is cooperative: the
feeder checks it before every release, workers before every claimed item and
before every fetch attempt. A cancelled in-flight fetch is abandoned without
an event; backoff sleeps are not interrupted.
"""
import logging
import queue
import threading
import time
from typing import Optional, Sequence

from core.rate_limiter import RateLimiter
from interfaces.notifier import IEventNotifier
from interfaces.tile_server import ITileFetcher
from models.events import (
    DownloadCancelledEvent, DownloadComplete, DownloadStarted, TileDownloaded,
    TileFailed, TileSkipped, TilesDownloaded,
)
from models.tile import Tile
from models.tile_server import DownloadSettings, TileServer
from services.image_converter import ImageConverter
from services.tile_cache_service import TileCacheService
from utils.tile_calculator import TileCalculator
from exceptions.tile_downloader_exceptions import (
    CacheWriteError, DownloadCancelled, DownloadError,
)

logger = logging.getLogger(__name__)

_END_OF_WORK = object()


class DownloadOrchestrator:
    """Runs one download of a tile list with a worker pool"""

    def __init__(self, fetcher: ITileFetcher, cache: TileCacheService,
                 settings: DownloadSettings, converter: Optional[ImageConverter] = None):
        self.fetcher = fetcher
        self.cache = cache
        self.settings = settings
        self.converter = converter or ImageConverter()

    def run(self, tiles: Sequence[Tile], server: TileServer, style_name: str,
            convert_to_8bit: bool, notifier: IEventNotifier,
            cancel_event: threading.Event) -> bool:
        """Download tiles; True if the list was exhausted without cancellation"""
        notifier.notify(DownloadStarted(total_tiles=len(tiles)))

        work_queue: queue.Queue = queue.Queue(maxsize=1)
        workers = []
        for i in range(self.settings.max_workers):
            worker = threading.Thread(
                target=self._worker_loop,
                args=(work_queue, server, style_name, convert_to_8bit, notifier, cancel_event),
                name=f"tile-worker-{i}",
                daemon=True,
            )
            worker.start()
            workers.append(worker)

        limiter = RateLimiter(self.settings.rate_limit)
        try:
            for tile in tiles:
                if not limiter.wait(cancel_event):
                    break
                work_queue.put(tile)
        finally:
            for _ in workers:
                work_queue.put(_END_OF_WORK)
            for worker in workers:
                worker.join()

        if cancel_event.is_set():
            logger.info("Download cancelled")
            notifier.notify(DownloadCancelledEvent())
            return False

        logger.info("Download finished successfully (%d tiles)", len(tiles))
        notifier.notify(TilesDownloaded())
        notifier.notify(DownloadComplete())
        return True

    def _worker_loop(self, work_queue: queue.Queue, server: TileServer, style_name: str,
                     convert_to_8bit: bool, notifier: IEventNotifier,
                     cancel_event: threading.Event) -> None:
        while True:
            tile = work_queue.get()
            if tile is _END_OF_WORK:
                return
            if cancel_event.is_set():
                # drain without processing so the feeder never blocks
                continue
            try:
                self.process_tile(tile, server, style_name, convert_to_8bit, notifier, cancel_event)
            except Exception:
                logger.exception("Unexpected error processing tile %s", tile)
                notifier.notify(TileFailed(tile=tile.key()))

    def process_tile(self, tile: Tile, server: TileServer, style_name: str,
                     convert_to_8bit: bool, notifier: IEventNotifier,
                     cancel_event: threading.Event) -> None:
        """Cache check, fetch with retries, convert, store, report"""
        if self.cache.exists(style_name, tile):
            notifier.notify(TileSkipped(bounds=TileCalculator.tile_bounds(tile)))
            return

        max_retries = self.settings.max_retries
        for attempt in range(max_retries):
            if cancel_event.is_set():
                return
            try:
                content = self.fetcher.fetch(server, tile, cancel_event)
            except DownloadCancelled:
                return
            except DownloadError as e:
                if attempt < max_retries - 1:
                    delay = self.settings.retry_backoff * (2 ** attempt)
                    logger.warning("%s. Retrying in %.1fs...", e, delay)
                    time.sleep(delay)
                else:
                    logger.warning("%s", e)
                continue

            if convert_to_8bit:
                content = self.converter.to_8bit(content)

            try:
                self.cache.write(style_name, tile, content)
            except CacheWriteError as e:
                logger.error("%s", e)
                return

            notifier.notify(TileDownloaded(bounds=TileCalculator.tile_bounds(tile)))
            return

        logger.error("Failed to download tile %s after %d attempts.", tile, max_retries)
        notifier.notify(TileFailed(tile=tile.key()))
