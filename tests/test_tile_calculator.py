#!/usr/bin/env python3
"""
Tests for TileCalculator utility
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import pytest
from models.tile import Tile
from utils.tile_calculator import TileCalculator

EPS = 1e-9

SAMPLE_POINTS = [
    (40.7128, -74.0060),   # New York
    (41.0082, 28.9784),    # Istanbul
    (-33.8688, 151.2093),  # Sydney
    (0.0, 0.0),
    (84.9, 179.9),
    (-84.9, -179.9),
]


class TestTileCalculator:
    """Test cases for TileCalculator class"""

    def test_point_to_tile_origin(self):
        assert TileCalculator.point_to_tile(0, 0, 0) == (0, 0)
        assert TileCalculator.point_to_tile(0, 0, 1) == (1, 1)
        assert TileCalculator.point_to_tile(60.0, -170.0, 1) == (0, 0)
        assert TileCalculator.point_to_tile(-60.0, 170.0, 1) == (1, 1)

    def test_point_to_tile_returns_ints_in_range(self):
        for lat, lon in SAMPLE_POINTS:
            for zoom in range(0, 20):
                x, y = TileCalculator.point_to_tile(lat, lon, zoom)
                assert isinstance(x, int)
                assert isinstance(y, int)
                assert 0 <= x < 2 ** zoom
                assert 0 <= y < 2 ** zoom

    def test_bounds_contain_point(self):
        for lat, lon in SAMPLE_POINTS:
            for zoom in range(0, 20):
                x, y = TileCalculator.point_to_tile(lat, lon, zoom)
                bounds = TileCalculator.tile_bounds(Tile(x, y, zoom))
                assert bounds.south - EPS <= lat <= bounds.north + EPS
                assert bounds.west - EPS <= lon <= bounds.east + EPS

    def test_tile_bounds_zero_zoom_covers_world(self):
        bounds = TileCalculator.tile_bounds(Tile(0, 0, 0))
        assert bounds.west == -180.0
        assert bounds.east == 180.0
        assert bounds.north == pytest.approx(85.0511287798, abs=1e-9)
        assert bounds.south == pytest.approx(-85.0511287798, abs=1e-9)

    def test_adjacent_tiles_share_edges(self):
        left = TileCalculator.tile_bounds(Tile(3, 5, 4))
        right = TileCalculator.tile_bounds(Tile(4, 5, 4))
        below = TileCalculator.tile_bounds(Tile(3, 6, 4))
        assert left.east == right.west
        assert left.south == below.north
        assert left.north >= left.south

    def test_world_tiles(self):
        assert TileCalculator.get_world_tiles(0, 0) == [Tile(0, 0, 0)]

        tiles = TileCalculator.get_world_tiles(0, 7)
        assert len(tiles) == 21845
        assert len(set(tiles)) == 21845
        assert sum(1 for t in tiles if t.z == 7) == 128 * 128
        assert all(t.is_valid() for t in tiles)

    def test_world_tiles_ordering(self):
        tiles = TileCalculator.get_world_tiles(0, 2)
        assert tiles == sorted(tiles, key=lambda t: (t.z, t.x, t.y))


if __name__ == "__main__":
    pytest.main([__file__])
