import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.tile import Tile

DEFAULT_SUBDOMAINS = ['a', 'b', 'c']
DEFAULT_USER_AGENT = 'MapTileDownloader/1.0 (Python)'


@dataclass
class TileServer:
    """Data model for a remote tile source (URL template)"""
    name: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    subdomains: List[str] = field(default_factory=lambda: list(DEFAULT_SUBDOMAINS))

    def get_tile_url(self, tile: Tile, subdomain: Optional[str] = None) -> str:
        """Substitute {s}, {z}, {x}, {y} in the URL template"""
        if subdomain is None:
            subdomain = random.choice(self.subdomains)
        url = self.url.replace('{s}', subdomain)
        url = url.replace('{z}', str(tile.z))
        url = url.replace('{x}', str(tile.x))
        return url.replace('{y}', str(tile.y))

    def get_headers(self) -> Dict[str, str]:
        """Get request headers"""
        headers = {'User-Agent': DEFAULT_USER_AGENT}
        headers.update(self.headers)
        return headers

    def get_name(self) -> str:
        """Get server name"""
        return self.name


@dataclass
class DownloadSettings:
    """Resolved runtime settings for the download core"""
    maps_directory: str = 'maps'
    max_workers: int = 10
    rate_limit: int = 50  # tiles per second
    max_retries: int = 3
    retry_backoff: float = 1.0  # seconds, doubled per attempt
    timeout: int = 30
    port: int = 8080
