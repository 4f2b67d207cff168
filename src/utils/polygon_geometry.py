from typing import Sequence

from models.tile import BoundingBox, GeoPoint

COLLINEAR = 0
CLOCKWISE = 1
COUNTERCLOCKWISE = 2


class PolygonGeometry:
    """Planar predicates on lat/lng polygons (point in polygon, segment intersection)"""

    @staticmethod
    def contains_point(polygon: Sequence[GeoPoint], point: GeoPoint) -> bool:
        """Ray casting, even-odd rule, in the polygon's own vertex order"""
        inside = False
        j = len(polygon) - 1
        for i in range(len(polygon)):
            pi, pj = polygon[i], polygon[j]
            if (pi.lat > point.lat) != (pj.lat > point.lat):
                cross_lng = (pj.lng - pi.lng) * (point.lat - pi.lat) / (pj.lat - pi.lat) + pi.lng
                if point.lng < cross_lng:
                    inside = not inside
            j = i
        return inside

    @staticmethod
    def orientation(p: GeoPoint, q: GeoPoint, r: GeoPoint) -> int:
        """Orientation of the ordered triplet (p, q, r)"""
        val = (q.lng - p.lng) * (r.lat - q.lat) - (q.lat - p.lat) * (r.lng - q.lng)
        if val == 0:
            return COLLINEAR
        return CLOCKWISE if val > 0 else COUNTERCLOCKWISE

    @staticmethod
    def on_segment(p: GeoPoint, q: GeoPoint, r: GeoPoint) -> bool:
        """True if q lies within the bounding box of segment pr"""
        return (min(p.lat, r.lat) <= q.lat <= max(p.lat, r.lat) and
                min(p.lng, r.lng) <= q.lng <= max(p.lng, r.lng))

    @staticmethod
    def segments_intersect(p1: GeoPoint, q1: GeoPoint, p2: GeoPoint, q2: GeoPoint) -> bool:
        """Segment p1q1 intersects segment p2q2 (touching and collinear overlap count)"""
        o1 = PolygonGeometry.orientation(p1, q1, p2)
        o2 = PolygonGeometry.orientation(p1, q1, q2)
        o3 = PolygonGeometry.orientation(p2, q2, p1)
        o4 = PolygonGeometry.orientation(p2, q2, q1)

        if o1 != o2 and o3 != o4:
            return True

        # collinear special cases
        if o1 == COLLINEAR and PolygonGeometry.on_segment(p1, p2, q1):
            return True
        if o2 == COLLINEAR and PolygonGeometry.on_segment(p1, q2, q1):
            return True
        if o3 == COLLINEAR and PolygonGeometry.on_segment(p2, p1, q2):
            return True
        if o4 == COLLINEAR and PolygonGeometry.on_segment(p2, q1, q2):
            return True
        return False

    @staticmethod
    def bbox_inside_polygon(polygon: Sequence[GeoPoint], bounds: BoundingBox) -> bool:
        """All four box corners are inside the polygon"""
        return all(PolygonGeometry.contains_point(polygon, c) for c in bounds.corners())

    @staticmethod
    def polygon_inside_bbox(polygon: Sequence[GeoPoint], bounds: BoundingBox) -> bool:
        """Every polygon vertex lies in the box (inclusive)"""
        return all(bounds.contains(p) for p in polygon)

    @staticmethod
    def polygon_intersects_bbox(polygon: Sequence[GeoPoint], bounds: BoundingBox) -> bool:
        """Any vertex in the box, any box corner in the polygon, or any edge crossing"""
        if any(bounds.contains(p) for p in polygon):
            return True

        corners = bounds.corners()
        if any(PolygonGeometry.contains_point(polygon, c) for c in corners):
            return True

        box_edges = [(corners[k], corners[(k + 1) % 4]) for k in range(4)]
        for i in range(len(polygon)):
            p1 = polygon[i]
            p2 = polygon[(i + 1) % len(polygon)]
            for c1, c2 in box_edges:
                if PolygonGeometry.segments_intersect(p1, p2, c1, c2):
                    return True
        return False
