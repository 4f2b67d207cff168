import math
from typing import List, Tuple

from models.tile import Tile, BoundingBox


class TileCalculator:
    """Utility class for Web-Mercator tile coordinate calculations"""

    @staticmethod
    def point_to_tile(lat_deg: float, lon_deg: float, zoom: int) -> Tuple[int, int]:
        """Convert lat/lon to tile coordinates (floor, no clamping)"""
        lat_rad = math.radians(lat_deg)
        n = 2.0 ** zoom
        xtile = math.floor(n * (lon_deg + 180.0) / 360.0)
        ytile = math.floor(n * (1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0)
        return xtile, ytile

    @staticmethod
    def tile_to_lat(y: int, zoom: int) -> float:
        """Latitude of the top edge of tile row y"""
        n = 2.0 ** zoom
        return math.degrees(math.atan(math.sinh(math.pi * (1 - 2 * y / n))))

    @staticmethod
    def tile_to_lon(x: int, zoom: int) -> float:
        """Longitude of the left edge of tile column x"""
        return x / (2.0 ** zoom) * 360.0 - 180.0

    @staticmethod
    def tile_bounds(tile: Tile) -> BoundingBox:
        """Return the geographic bounds of a tile"""
        return BoundingBox(
            north=TileCalculator.tile_to_lat(tile.y, tile.z),
            south=TileCalculator.tile_to_lat(tile.y + 1, tile.z),
            east=TileCalculator.tile_to_lon(tile.x + 1, tile.z),
            west=TileCalculator.tile_to_lon(tile.x, tile.z),
        )

    @staticmethod
    def get_world_tiles(min_zoom: int = 0, max_zoom: int = 7) -> List[Tile]:
        """All tiles of every zoom level in range, ordered z, x, y"""
        tiles = []
        for z in range(min_zoom, max_zoom + 1):
            n = 1 << z
            for x in range(n):
                for y in range(n):
                    tiles.append(Tile(x, y, z))
        return tiles
