"""
Geospatial helpers for report filtering and the municipal geofence.

Coordinates are (longitude, latitude) in WGS84 degrees, matching GeoJSON order.
"""

import json
import math
from typing import Any, Dict, List, Optional, Sequence

EARTH_RADIUS_METERS = 6371000

Ring = Sequence[Sequence[float]]


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def in_bounding_box(
    longitude: float,
    latitude: float,
    min_longitude: float,
    min_latitude: float,
    max_longitude: float,
    max_latitude: float,
) -> bool:
    """Inclusive envelope test."""
    return min_longitude <= longitude <= max_longitude and min_latitude <= latitude <= max_latitude


def within_radius(
    longitude: float,
    latitude: float,
    center_longitude: float,
    center_latitude: float,
    radius_meters: float,
) -> bool:
    return haversine_meters(latitude, longitude, center_latitude, center_longitude) <= radius_meters


def point_in_ring(longitude: float, latitude: float, ring: Ring) -> bool:
    """Ray casting point-in-polygon test for a single linear ring."""
    inside = False
    n = len(ring)
    if n < 3:
        return False
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > latitude) != (yj > latitude):
            x_cross = (xj - xi) * (latitude - yi) / (yj - yi) + xi
            if longitude < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_polygon(longitude: float, latitude: float, polygon: List[Ring]) -> bool:
    """A polygon is an outer ring followed by optional holes."""
    if not polygon:
        return False
    if not point_in_ring(longitude, latitude, polygon[0]):
        return False
    return not any(point_in_ring(longitude, latitude, hole) for hole in polygon[1:])


def point_in_geometry(longitude: float, latitude: float, geometry: Dict[str, Any]) -> bool:
    """Test a point against a GeoJSON Polygon or MultiPolygon."""
    geometry_type = geometry.get("type")
    coordinates = geometry.get("coordinates") or []
    if geometry_type == "Polygon":
        return point_in_polygon(longitude, latitude, coordinates)
    if geometry_type == "MultiPolygon":
        return any(point_in_polygon(longitude, latitude, polygon) for polygon in coordinates)
    return False


def load_geometry(raw: Any) -> Optional[Dict[str, Any]]:
    """
    Boundaries are stored as GeoJSON strings since Firestore cannot hold
    nested arrays. Dicts are accepted as-is.
    """
    if raw is None:
        return None
    if isinstance(raw, dict):
        return raw
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None
