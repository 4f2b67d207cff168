import json
from typing import Any, Dict, List

from shapely.geometry import shape

from models.tile import GeoPoint
from exceptions.tile_downloader_exceptions import ValidationError


class GeoJSONLoader:
    """Reads polygon exterior rings from GeoJSON documents"""

    @staticmethod
    def load_file(path: str) -> List[List[GeoPoint]]:
        """Load polygon rings from a GeoJSON file"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ValidationError(f"Cannot read polygon file {path}: {e}")
        return GeoJSONLoader.polygons_from_geojson(document)

    @staticmethod
    def polygons_from_geojson(document: Dict[str, Any]) -> List[List[GeoPoint]]:
        """Accepts a geometry, Feature or FeatureCollection"""
        if not isinstance(document, dict):
            raise ValidationError(f"GeoJSON object expected, got {type(document).__name__}")
        doc_type = document.get('type')
        if doc_type == 'FeatureCollection':
            rings = []
            for feature in document.get('features', []):
                rings.extend(GeoJSONLoader.polygons_from_geojson(feature))
            return rings
        if doc_type == 'Feature':
            geometry = document.get('geometry')
            return GeoJSONLoader.polygons_from_geojson(geometry) if geometry else []

        try:
            geometry = shape(document)
        except Exception as e:
            raise ValidationError(f"Invalid GeoJSON geometry: {e}")
        return GeoJSONLoader.polygons_from_geometry(geometry)

    @staticmethod
    def polygons_from_geometry(geometry) -> List[List[GeoPoint]]:
        """Exterior rings of a shapely Polygon/MultiPolygon, closing vertex dropped"""
        if geometry.geom_type == 'Polygon':
            polygons = [geometry]
        elif geometry.geom_type == 'MultiPolygon':
            polygons = list(geometry.geoms)
        else:
            raise ValidationError(f"Unsupported geometry type: {geometry.geom_type}")

        rings = []
        for polygon in polygons:
            coords = list(polygon.exterior.coords)
            if len(coords) > 1 and coords[0] == coords[-1]:
                coords = coords[:-1]
            rings.append([GeoPoint(lat=c[1], lng=c[0]) for c in coords])
        return rings
