import logging
import threading

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from interfaces.tile_server import ITileFetcher
from models.tile import Tile
from models.tile_server import TileServer
from exceptions.tile_downloader_exceptions import DownloadCancelled, DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024


class TileDownloadService(ITileFetcher):
    """Service for fetching single tiles over HTTP"""

    def __init__(self, timeout: int = 30, pool_size: int = 20):
        self.timeout = timeout
        self.pool_size = pool_size
        self._local = threading.local()

    def create_session(self) -> requests.Session:
        """Create pooled session for downloads"""
        session = requests.Session()

        # attempts are counted per tile by the orchestrator, not by urllib3
        retry_strategy = Retry(total=0, raise_on_status=False)

        adapter = HTTPAdapter(
            max_retries=retry_strategy,
            pool_connections=self.pool_size,
            pool_maxsize=self.pool_size
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _get_session(self) -> requests.Session:
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self.create_session()
            self._local.session = session
        return session

    def fetch(self, server: TileServer, tile: Tile, cancel_event: threading.Event) -> bytes:
        """Single fetch attempt, aborted between body chunks on cancellation"""
        if cancel_event.is_set():
            raise DownloadCancelled(f"Cancelled before fetching tile {tile}")

        tile_url = server.get_tile_url(tile)
        chunks = []
        try:
            with self._get_session().get(tile_url, headers=server.get_headers(),
                                         timeout=self.timeout, stream=True) as response:
                if not 200 <= response.status_code < 300:
                    raise DownloadError(f"Unexpected status code {response.status_code} for tile {tile}")
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if cancel_event.is_set():
                        raise DownloadCancelled(f"Cancelled while reading tile {tile}")
                    chunks.append(chunk)
        except requests.RequestException as e:
            raise DownloadError(f"Error downloading tile {tile} from {tile_url}: {e}")

        content = b''.join(chunks)
        # Reject empty content to avoid creating zero-byte tiles
        if not content:
            raise DownloadError(f"Empty content received for tile {tile} from {tile_url}")
        return content
