import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest
from models.tile import GeoPoint, Tile
from services.tile_selector import TileSelector
from utils.tile_calculator import TileCalculator


def aligned_rectangle(zoom, min_x, max_x, min_y, max_y):
    """Polygon whose edges are exactly the outer edges of a tile block"""
    nw = TileCalculator.tile_bounds(Tile(min_x, min_y, zoom))
    se = TileCalculator.tile_bounds(Tile(max_x, max_y, zoom))
    return [
        GeoPoint(nw.north, nw.west),
        GeoPoint(nw.north, se.east),
        GeoPoint(se.south, se.east),
        GeoPoint(se.south, nw.west),
    ]


def lon(x, zoom):
    return TileCalculator.tile_to_lon(x, zoom)


def lat(y, zoom):
    return TileCalculator.tile_to_lat(y, zoom)


class TestTileSelector:

    def test_aligned_rectangle_selects_exact_block(self):
        zoom = 4
        polygon = aligned_rectangle(zoom, 3, 5, 4, 6)

        tiles = TileSelector.select_tiles([polygon], zoom, zoom)

        expected = {Tile(x, y, zoom) for x in range(3, 6) for y in range(4, 7)}
        assert set(tiles) == expected
        assert len(tiles) == 9

    def test_tiles_within_grid(self):
        istanbul = TileSelector.bbox_polygon(28.5, 40.8, 29.5, 41.2)
        world = TileSelector.bbox_polygon(-180.0, -85.0, 180.0, 85.0)

        tiles = TileSelector.select_tiles([istanbul, world], 0, 5)

        assert tiles
        for tile in tiles:
            assert 0 <= tile.x < 2 ** tile.z
            assert 0 <= tile.y < 2 ** tile.z

    def test_overlapping_polygons_are_deduplicated(self):
        a = TileSelector.bbox_polygon(28.5, 40.8, 29.5, 41.2)
        b = TileSelector.bbox_polygon(29.0, 40.9, 30.0, 41.5)

        tiles = TileSelector.select_tiles([a, b, a], 8, 11)

        assert len(tiles) == len(set(tiles))
        union = set(TileSelector.select_tiles([a], 8, 11)) | set(TileSelector.select_tiles([b], 8, 11))
        assert set(tiles) == union

    def test_polygon_inside_single_tile(self):
        lat0, lng0 = 40.5, 29.1
        triangle = [GeoPoint(lat0, lng0), GeoPoint(lat0 + 0.001, lng0), GeoPoint(lat0, lng0 + 0.001)]

        tiles = TileSelector.select_tiles([triangle], 5, 7)

        expected = [Tile(*TileCalculator.point_to_tile(lat0, lng0, z), z) for z in range(5, 8)]
        assert tiles == expected

    def test_short_polygons_are_skipped(self):
        line = [GeoPoint(40.0, 29.0), GeoPoint(41.0, 30.0)]
        assert TileSelector.select_tiles([line], 0, 10) == []
        assert TileSelector.select_tiles([[]], 0, 3) == []

    def test_concave_notch_excluded(self):
        zoom = 3
        # L shape over columns 0-3, rows 2-5 without the 2x2 block at x 2-3, y 2-3
        polygon = [
            GeoPoint(lat(2, zoom), lon(0, zoom)),
            GeoPoint(lat(2, zoom), lon(2, zoom)),
            GeoPoint(lat(4, zoom), lon(2, zoom)),
            GeoPoint(lat(4, zoom), lon(4, zoom)),
            GeoPoint(lat(6, zoom), lon(4, zoom)),
            GeoPoint(lat(6, zoom), lon(0, zoom)),
        ]

        tiles = set(TileSelector.select_tiles([polygon], zoom, zoom))

        # tiles only touching the notch boundary count as intersecting
        assert Tile(3, 2, zoom) not in tiles
        assert {Tile(2, 2, zoom), Tile(2, 3, zoom), Tile(3, 3, zoom)} <= tiles
        assert len(tiles) == 15

    def test_vertex_on_outer_edge_does_not_pull_in_neighbour(self):
        zoom = 4
        west, east = lon(3, zoom), lon(4, zoom)
        north, south = lat(5, zoom), lat(6, zoom)
        mid_lat = (north + south) / 2
        triangle = [
            GeoPoint(north - (north - south) * 0.25, west + (east - west) * 0.25),
            GeoPoint(mid_lat, east),
            GeoPoint(south + (north - south) * 0.25, west + (east - west) * 0.25),
        ]

        assert TileSelector.select_tiles([triangle], zoom, zoom) == [Tile(3, 5, zoom)]
        # the neighbour touches the apex but lies outside the candidate range
        assert TileSelector.tile_matches(triangle, Tile(4, 5, zoom))
        assert TileSelector.candidate_range(triangle, zoom) == (3, 3, 5, 5)

    def test_dispatch_order(self):
        a = TileSelector.bbox_polygon(28.5, 40.8, 29.5, 41.2)

        tiles = TileSelector.select_tiles([a], 9, 11)

        assert tiles == sorted(tiles, key=lambda t: (t.z, t.x, t.y))

    def test_polygon_order_is_kept(self):
        east = TileSelector.bbox_polygon(100.0, 10.0, 101.0, 11.0)
        west = TileSelector.bbox_polygon(-101.0, 10.0, -100.0, 11.0)

        tiles = TileSelector.select_tiles([east, west], 6, 6)

        first_west = next(i for i, t in enumerate(tiles) if t.x < 32)
        assert all(t.x >= 32 for t in tiles[:first_west])
        assert all(t.x < 32 for t in tiles[first_west:])

    def test_world_polygon_covers_all_tiles(self):
        world = TileSelector.bbox_polygon(-180.0, -85.0511287798, 180.0, 85.0511287798)

        tiles = TileSelector.select_tiles([world], 0, 3)

        assert len(tiles) == 1 + 4 + 16 + 64

    @pytest.mark.parametrize("zoom", [0, 1, 5, 12])
    def test_candidate_range_within_grid(self, zoom):
        polygon = TileSelector.bbox_polygon(-180.0, -89.0, 180.0, 89.0)
        min_x, max_x, min_y, max_y = TileSelector.candidate_range(polygon, zoom)
        last = 2 ** zoom - 1
        assert (min_x, max_x, min_y, max_y) == (0, last, 0, last)
