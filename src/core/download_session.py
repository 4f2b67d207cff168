import itertools
import logging
import threading
from enum import Enum
from typing import List, Optional, Union

from core.download_orchestrator import DownloadOrchestrator
from interfaces.notifier import IEventNotifier
from interfaces.tile_server import ITileFetcher
from models.download_request import AreaDownloadRequest, WorldDownloadRequest
from models.events import ErrorEvent
from models.tile import Tile
from models.tile_server import DownloadSettings
from services.image_converter import ImageConverter
from services.map_source_service import MapSourceRegistry
from services.tile_cache_service import TileCacheService
from services.tile_download_service import TileDownloadService
from services.tile_selector import TileSelector
from utils.tile_calculator import TileCalculator
from exceptions.tile_downloader_exceptions import SessionBusyError, ValidationError

logger = logging.getLogger(__name__)

DownloadRequest = Union[AreaDownloadRequest, WorldDownloadRequest]


class SessionState(Enum):
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    FAILED = 'failed'


class DownloadSession:
    """One accepted download request and its cancellation token"""

    _ids = itertools.count(1)

    def __init__(self, request: DownloadRequest):
        self.id = next(self._ids)
        self.request = request
        self.cancel_event = threading.Event()
        self.state = SessionState.IDLE
        self.total_tiles = 0
        self._thread: Optional[threading.Thread] = None
        self._done = threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the session ends; False on timeout"""
        return self._done.wait(timeout)

    @property
    def finished(self) -> bool:
        return self._done.is_set()


class DownloadSessionManager:
    """Process-wide guard allowing at most one running download"""

    def __init__(self, settings: DownloadSettings, registry: MapSourceRegistry,
                 fetcher: Optional[ITileFetcher] = None,
                 cache: Optional[TileCacheService] = None,
                 converter: Optional[ImageConverter] = None):
        self.settings = settings
        self.registry = registry
        self.cache = cache or TileCacheService(settings.maps_directory)
        self.orchestrator = DownloadOrchestrator(
            fetcher=fetcher or TileDownloadService(timeout=settings.timeout,
                                                   pool_size=settings.max_workers),
            cache=self.cache,
            settings=settings,
            converter=converter,
        )
        self._lock = threading.Lock()
        self._active: Optional[DownloadSession] = None

    @property
    def active_session(self) -> Optional[DownloadSession]:
        with self._lock:
            return self._active

    def is_running(self) -> bool:
        return self.active_session is not None

    def start(self, request: DownloadRequest, notifier: IEventNotifier,
              background: bool = True) -> Optional[DownloadSession]:
        """Accept a request and run it; None (plus an error event) if rejected"""
        try:
            session = self._acquire(request)
        except (SessionBusyError, ValidationError) as e:
            logger.warning("Download request rejected: %s", e)
            notifier.notify(ErrorEvent(message=str(e)))
            return None

        if background:
            session._thread = threading.Thread(target=self._run, args=(session, notifier),
                                               name=f"download-session-{session.id}", daemon=True)
            session._thread.start()
        else:
            self._run(session, notifier)
        return session

    def cancel(self) -> bool:
        """Signal the running session, if any"""
        with self._lock:
            session = self._active
        if session is None:
            logger.info("Cancel requested with no download running")
            return False
        logger.info("Download cancelled by user")
        session.cancel()
        return True

    def _acquire(self, request: DownloadRequest) -> DownloadSession:
        with self._lock:
            if self._active is not None:
                raise SessionBusyError()
            request.validate()
            session = DownloadSession(request)
            session.state = SessionState.RUNNING
            self._active = session
            return session

    def _release(self, session: DownloadSession) -> None:
        with self._lock:
            if self._active is session:
                self._active = None
        session._done.set()

    def tiles_for(self, request: DownloadRequest) -> List[Tile]:
        if isinstance(request, WorldDownloadRequest):
            return TileCalculator.get_world_tiles(request.min_zoom, request.max_zoom)
        return TileSelector.select_tiles(request.polygons, request.min_zoom, request.max_zoom)

    def _run(self, session: DownloadSession, notifier: IEventNotifier) -> None:
        request = session.request
        try:
            logger.info("Starting download for %s", request.describe())
            server = self.registry.create_server(request.map_style)
            tiles = self.tiles_for(request)
            session.total_tiles = len(tiles)
            completed = self.orchestrator.run(
                tiles=tiles,
                server=server,
                style_name=server.get_name(),
                convert_to_8bit=request.convert_to_8bit,
                notifier=notifier,
                cancel_event=session.cancel_event,
            )
            session.state = SessionState.COMPLETED if completed else SessionState.CANCELLED
        except Exception as e:
            logger.exception("Download session %d failed", session.id)
            session.state = SessionState.FAILED
            notifier.notify(ErrorEvent(message=f"Download failed: {e}"))
        finally:
            self._release(session)
