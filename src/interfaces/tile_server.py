import threading
from abc import ABC, abstractmethod
from typing import Any, Dict

from models.tile import Tile
from models.tile_server import TileServer


class ITileFetcher(ABC):
    """Interface for fetching tile bytes from a remote source"""

    @abstractmethod
    def fetch(self, server: TileServer, tile: Tile, cancel_event: threading.Event) -> bytes:
        """Run one fetch attempt; raises DownloadError or DownloadCancelled"""
        pass


class IConfigLoader(ABC):
    """Interface for configuration loading"""

    @abstractmethod
    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from file"""
        pass

    @abstractmethod
    def validate_config(self, config: Dict[str, Any]) -> bool:
        """Validate configuration"""
        pass
