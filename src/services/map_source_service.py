import json
import logging
import os
from typing import Dict, Optional

from models.tile_server import TileServer
from exceptions.tile_downloader_exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_MAP_SOURCES_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
                                        'config', 'map_sources.json')
DEFAULT_STYLE_NAME = 'default'


class MapSourceRegistry:
    """Read-only mapping of style names to tile URL templates"""

    def __init__(self, sources: Optional[Dict[str, str]] = None):
        self._sources: Dict[str, str] = dict(sources or {})

    @classmethod
    def load(cls, path: Optional[str] = None) -> 'MapSourceRegistry':
        """Load map sources from a JSON object file"""
        path = path or DEFAULT_MAP_SOURCES_PATH
        try:
            with open(path, 'r', encoding='utf-8') as f:
                sources = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Failed to load map sources from {path}: {e}")

        if not isinstance(sources, dict) or not all(isinstance(v, str) for v in sources.values()):
            raise ConfigurationError(f"Map sources in {path} must be an object of name -> URL template")

        logger.info("Loaded %d map sources from %s", len(sources), path)
        return cls(sources)

    def get_sources(self) -> Dict[str, str]:
        return dict(self._sources)

    def get_url(self, style_name: str) -> Optional[str]:
        return self._sources.get(style_name)

    def get_style_name(self, url: str) -> str:
        """Registered name of a URL template, or 'default'"""
        for name, template in self._sources.items():
            if template == url:
                return name
        return DEFAULT_STYLE_NAME

    def create_server(self, url: str) -> TileServer:
        """Tile server for a request's URL template"""
        return TileServer(name=self.get_style_name(url), url=url)

