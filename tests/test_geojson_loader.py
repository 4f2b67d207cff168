import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from pathlib import Path

import pytest

from models.tile import GeoPoint
from utils.geojson_loader import GeoJSONLoader
from exceptions.tile_downloader_exceptions import ValidationError

SQUARE = [[[29.0, 41.0], [29.5, 41.0], [29.5, 41.5], [29.0, 41.5], [29.0, 41.0]]]


def test_polygon_ring_is_lat_lng_without_closing_vertex():
    rings = GeoJSONLoader.polygons_from_geojson({'type': 'Polygon', 'coordinates': SQUARE})
    assert rings == [[GeoPoint(41.0, 29.0), GeoPoint(41.0, 29.5), GeoPoint(41.5, 29.5), GeoPoint(41.5, 29.0)]]


def test_multipolygon_and_feature_collection():
    document = {
        'type': 'FeatureCollection',
        'features': [
            {'type': 'Feature', 'properties': {}, 'geometry': {'type': 'Polygon', 'coordinates': SQUARE}},
            {'type': 'Feature', 'properties': {}, 'geometry': {'type': 'MultiPolygon',
                                                               'coordinates': [SQUARE, SQUARE]}},
            {'type': 'Feature', 'properties': {}, 'geometry': None},
        ],
    }
    assert len(GeoJSONLoader.polygons_from_geojson(document)) == 3


def test_unsupported_geometry():
    with pytest.raises(ValidationError):
        GeoJSONLoader.polygons_from_geojson({'type': 'Point', 'coordinates': [29.0, 41.0]})


def test_unreadable_file(tmp_path: Path):
    with pytest.raises(ValidationError):
        GeoJSONLoader.load_file(str(tmp_path / 'nope.geojson'))


@pytest.mark.parametrize('document', [[{'type': 'Polygon', 'coordinates': SQUARE}], 'Polygon', None])
def test_non_object_document(document):
    with pytest.raises(ValidationError):
        GeoJSONLoader.polygons_from_geojson(document)


def test_top_level_array_file(tmp_path: Path):
    path = tmp_path / 'array.geojson'
    path.write_text('[{"type": "Polygon", "coordinates": []}]', encoding='utf-8')
    with pytest.raises(ValidationError):
        GeoJSONLoader.load_file(str(path))
