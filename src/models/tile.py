from dataclasses import dataclass
from typing import Dict

MAX_ZOOM = 19


@dataclass(frozen=True)
class Tile:
    """Slippy-map tile address"""
    x: int
    y: int
    z: int

    def is_valid(self) -> bool:
        """Check the tile lies inside its zoom level grid"""
        if not 0 <= self.z <= MAX_ZOOM:
            return False
        n = 1 << self.z
        return 0 <= self.x < n and 0 <= self.y < n

    def key(self) -> str:
        """Return the z/x/y form used in events and logs"""
        return f"{self.z}/{self.x}/{self.y}"

    def __str__(self) -> str:
        return self.key()


@dataclass(frozen=True)
class GeoPoint:
    """Geographic point in degrees"""
    lat: float
    lng: float

    @classmethod
    def from_dict(cls, data: Dict) -> 'GeoPoint':
        """Build from a {"lat": .., "lng": ..} mapping"""
        return cls(lat=float(data['lat']), lng=float(data['lng']))


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box in degrees"""
    north: float
    south: float
    east: float
    west: float

    def contains(self, point: GeoPoint) -> bool:
        """Inclusive containment test"""
        return (self.south <= point.lat <= self.north and
                self.west <= point.lng <= self.east)

    def corners(self):
        """Return the NW, NE, SE, SW corners in ring order"""
        return (
            GeoPoint(self.north, self.west),
            GeoPoint(self.north, self.east),
            GeoPoint(self.south, self.east),
            GeoPoint(self.south, self.west),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            'west': self.west,
            'south': self.south,
            'east': self.east,
            'north': self.north,
        }
