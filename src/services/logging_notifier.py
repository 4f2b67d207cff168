import logging
import threading
from typing import Dict, List

from interfaces.notifier import IEventNotifier
from models.events import (
    DownloadCancelledEvent, DownloadComplete, DownloadEvent, DownloadStarted,
    ErrorEvent, TileDownloaded, TileFailed, TileSkipped,
)

logger = logging.getLogger(__name__)


class LoggingNotifier(IEventNotifier):
    """Reports session events through logging, with periodic progress lines"""

    def __init__(self, progress_every: int = 100):
        self.progress_every = progress_every
        self.total = 0
        self.counts: Dict[str, int] = {'downloaded': 0, 'skipped': 0, 'failed': 0}
        self.failed_tiles: List[str] = []
        self.errors: List[str] = []
        self.finished = False
        self.cancelled = False
        self._lock = threading.Lock()

    @property
    def processed(self) -> int:
        return sum(self.counts.values())

    def notify(self, event: DownloadEvent) -> None:
        with self._lock:
            if isinstance(event, DownloadStarted):
                self.total = event.total_tiles
                logger.info("Download started: %d tiles", event.total_tiles)
            elif isinstance(event, TileDownloaded):
                self._count('downloaded')
            elif isinstance(event, TileSkipped):
                self._count('skipped')
            elif isinstance(event, TileFailed):
                self.failed_tiles.append(event.tile)
                self._count('failed')
            elif isinstance(event, DownloadComplete):
                self.finished = True
                logger.info("Download complete: %s", self.summary())
            elif isinstance(event, DownloadCancelledEvent):
                self.cancelled = True
                logger.warning("Download cancelled: %s", self.summary())
            elif isinstance(event, ErrorEvent):
                self.errors.append(event.message)
                logger.error("Download error: %s", event.message)

    def _count(self, key: str) -> None:
        self.counts[key] += 1
        done = self.processed
        if done % self.progress_every == 0 or done == self.total:
            logger.info("Progress: %d/%d tiles", done, self.total)

    def summary(self) -> str:
        return (f"{self.counts['downloaded']} downloaded, {self.counts['skipped']} skipped, "
                f"{self.counts['failed']} failed of {self.total}")
