import logging
import os
from typing import List

from models.tile import Tile
from utils.file_utils import FileUtils
from exceptions.tile_downloader_exceptions import CacheWriteError

logger = logging.getLogger(__name__)

TILE_EXTENSION = '.png'


class TileCacheService:
    """Filesystem tile cache laid out as <root>/<style>/<z>/<x>/<y>.png"""

    def __init__(self, cache_root: str):
        self.cache_root = cache_root

    def style_directory(self, style_name: str) -> str:
        """Cache directory of a style"""
        return os.path.join(self.cache_root, FileUtils.sanitize_style_name(style_name))

    def tile_path(self, style_name: str, tile: Tile) -> str:
        return os.path.join(self.style_directory(style_name), str(tile.z), str(tile.x),
                            f"{tile.y}{TILE_EXTENSION}")

    def exists(self, style_name: str, tile: Tile) -> bool:
        """Check if a tile is already cached"""
        return FileUtils.file_exists(self.tile_path(style_name, tile))

    def write(self, style_name: str, tile: Tile, content: bytes) -> str:
        """Store tile bytes; raises CacheWriteError on any local failure"""
        path = self.tile_path(style_name, tile)
        try:
            FileUtils.ensure_directory_exists(os.path.dirname(path))
        except OSError as e:
            raise CacheWriteError(f"Error creating tile directory for tile {tile}: {e}")
        try:
            FileUtils.write_atomic(path, content)
        except OSError as e:
            raise CacheWriteError(f"Error writing tile {tile}: {e}")
        return path

    def enumerate(self, style_name: str) -> List[Tile]:
        """List cached tiles of a style, sorted by z, x, y"""
        style_dir = self.style_directory(style_name)
        tiles = []
        if not os.path.isdir(style_dir):
            return tiles

        for root, _dirs, files in os.walk(style_dir):
            rel_parts = os.path.relpath(root, style_dir).split(os.sep)
            if len(rel_parts) != 2:
                continue
            z_str, x_str = rel_parts
            if not (z_str.isdigit() and x_str.isdigit()):
                continue
            for name in files:
                y_str, ext = os.path.splitext(name)
                if ext != TILE_EXTENSION or not y_str.isdigit():
                    continue
                tile = Tile(int(x_str), int(y_str), int(z_str))
                if tile.is_valid():
                    tiles.append(tile)

        tiles.sort(key=lambda t: (t.z, t.x, t.y))
        return tiles
