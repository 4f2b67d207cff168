from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models.tile import GeoPoint, MAX_ZOOM
from exceptions.tile_downloader_exceptions import ValidationError

WORLD_MAX_ZOOM = 7


@dataclass
class AreaDownloadRequest:
    """Download request for one or more polygons"""
    polygons: List[List[GeoPoint]]
    min_zoom: int
    max_zoom: int
    map_style: str
    convert_to_8bit: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AreaDownloadRequest':
        """Parse the JSON-shaped request body"""
        try:
            polygons = [
                [GeoPoint.from_dict(p) for p in ring]
                for ring in (data.get('polygons') or [])
            ]
            return cls(
                polygons=polygons,
                min_zoom=int(data.get('min_zoom', 0)),
                max_zoom=int(data.get('max_zoom', 0)),
                map_style=str(data.get('map_style', '')),
                convert_to_8bit=bool(data.get('convert_to_8bit', False)),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ValidationError(f"Invalid download request: {e}")

    def validate(self) -> None:
        """Raise ValidationError when the request cannot start a session"""
        if self.min_zoom < 0 or self.max_zoom > MAX_ZOOM or self.min_zoom > self.max_zoom:
            raise ValidationError(f"Invalid zoom range (must be 0-{MAX_ZOOM}, min <= max)")
        if not self.polygons:
            raise ValidationError("No polygons provided")

    def describe(self) -> str:
        return (f"{len(self.polygons)} polygon(s), zoom: {self.min_zoom}-{self.max_zoom}, "
                f"map style: {self.map_style}")


@dataclass
class WorldDownloadRequest:
    """Download request covering the whole globe at zoom 0..7"""
    map_style: str
    convert_to_8bit: bool = False
    min_zoom: int = field(default=0, init=False)
    max_zoom: int = field(default=WORLD_MAX_ZOOM, init=False)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'WorldDownloadRequest':
        try:
            data = data or {}
            return cls(
                map_style=str(data.get('map_style', '')),
                convert_to_8bit=bool(data.get('convert_to_8bit', False)),
            )
        except (TypeError, AttributeError) as e:
            raise ValidationError(f"Invalid world download request: {e}")

    def validate(self) -> None:
        pass

    def describe(self) -> str:
        return f"world, zoom: {self.min_zoom}-{self.max_zoom}, map style: {self.map_style}"
