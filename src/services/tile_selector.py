import logging
import math
from typing import List, Sequence, Set, Tuple

from models.tile import GeoPoint, Tile
from utils.polygon_geometry import PolygonGeometry
from utils.tile_calculator import TileCalculator

logger = logging.getLogger(__name__)

# Tolerance in tile units when snapping a polygon bbox to the tile grid.
GRID_EPSILON = 1e-9


class TileSelector:
    """Selects the tiles covering a set of polygons over a zoom range"""

    @staticmethod
    def polygon_bbox(polygon: Sequence[GeoPoint]) -> Tuple[float, float, float, float]:
        """Return (min_lat, min_lng, max_lat, max_lng)"""
        lats = [p.lat for p in polygon]
        lngs = [p.lng for p in polygon]
        return min(lats), min(lngs), max(lats), max(lngs)

    @staticmethod
    def candidate_range(polygon: Sequence[GeoPoint], zoom: int) -> Tuple[int, int, int, int]:
        """Tile rectangle (min_x, max_x, min_y, max_y) covering the polygon bbox.

        An edge lying exactly on a tile boundary does not pull in the
        neighbouring row or column.
        """
        min_lat, min_lng, max_lat, max_lng = TileSelector.polygon_bbox(polygon)
        # A vertex touching a tile only on the outer bbox edge does not select
        # that tile, although tile_matches would accept it.
        n = 2.0 ** zoom

        def fx(lng: float) -> float:
            return n * (lng + 180.0) / 360.0

        def fy(lat: float) -> float:
            return n * (1.0 - math.asinh(math.tan(math.radians(lat))) / math.pi) / 2.0

        last = (1 << zoom) - 1
        min_x = max(0, math.floor(fx(min_lng) + GRID_EPSILON))
        max_x = min(last, math.ceil(fx(max_lng) - GRID_EPSILON) - 1)
        min_y = max(0, math.floor(fy(max_lat) + GRID_EPSILON))
        max_y = min(last, math.ceil(fy(min_lat) - GRID_EPSILON) - 1)

        # degenerate (zero width/height) polygons still map to the tile they sit in
        max_x = max(max_x, min(min_x, last))
        max_y = max(max_y, min(min_y, last))
        return min_x, max_x, min_y, max_y

    @staticmethod
    def tile_matches(polygon: Sequence[GeoPoint], tile: Tile) -> bool:
        """Tile inside polygon, polygon inside tile, or boundaries intersect"""
        bounds = TileCalculator.tile_bounds(tile)
        if PolygonGeometry.bbox_inside_polygon(polygon, bounds):
            return True
        if PolygonGeometry.polygon_inside_bbox(polygon, bounds):
            return True
        return PolygonGeometry.polygon_intersects_bbox(polygon, bounds)

    @staticmethod
    def select_tiles(polygons: Sequence[Sequence[GeoPoint]], min_zoom: int, max_zoom: int) -> List[Tile]:
        """Get the deduplicated tiles covering all polygons.

        Order is polygon, then zoom, x and y ascending; a tile already selected
        by an earlier polygon is not repeated.
        """
        selected: Set[Tile] = set()
        tiles: List[Tile] = []

        for index, polygon in enumerate(polygons):
            if len(polygon) < 3:
                logger.debug("Skipping polygon %d with %d points", index, len(polygon))
                continue

            for z in range(min_zoom, max_zoom + 1):
                min_x, max_x, min_y, max_y = TileSelector.candidate_range(polygon, z)
                for x in range(min_x, max_x + 1):
                    for y in range(min_y, max_y + 1):
                        tile = Tile(x, y, z)
                        if tile in selected:
                            continue
                        if TileSelector.tile_matches(polygon, tile):
                            selected.add(tile)
                            tiles.append(tile)

        return tiles

    @staticmethod
    def bbox_polygon(min_lon: float, min_lat: float, max_lon: float, max_lat: float) -> List[GeoPoint]:
        """Rectangle ring for a [min_lon, min_lat, max_lon, max_lat] bbox"""
        return [
            GeoPoint(max_lat, min_lon),
            GeoPoint(max_lat, max_lon),
            GeoPoint(min_lat, max_lon),
            GeoPoint(min_lat, min_lon),
        ]
