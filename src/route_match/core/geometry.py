"""Geodesic and local-planar helpers shared by every matching stage."""
from __future__ import annotations

from math import atan2, cos, degrees, radians, sin, sqrt

from route_match.contracts.route_contract import GeoNode, Projection


EARTH_RADIUS_M = 6_371_000.0
M_PER_DEG = 111_320.0  # local planar scale, metres per degree of latitude
_MIN_SEGMENT_M = 0.001  # below 1 mm a segment is treated as a point


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in metres between two WGS-84 points."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2r - lat1r
    dlon = lon2r - lon1r
    a = sin(dlat / 2) ** 2 + cos(lat1r) * cos(lat2r) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(a), sqrt(1 - a))


def bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial bearing (degrees clockwise from true north), in [0, 360)."""
    lat1r, lon1r, lat2r, lon2r = map(radians, [lat1, lon1, lat2, lon2])
    dlon = lon2r - lon1r
    x = sin(dlon) * cos(lat2r)
    y = cos(lat1r) * sin(lat2r) - sin(lat1r) * cos(lat2r) * cos(dlon)
    return (degrees(atan2(x, y)) + 360.0) % 360.0


def angle_diff_deg(a: float, b: float) -> float:
    """Minimal circular difference in degrees in [0, 180]."""
    d = (a - b) % 360.0
    if d > 180.0:
        d = 360.0 - d
    return float(d)


def _local_xy(lat: float, lon: float, origin_lat: float, origin_lon: float) -> tuple[float, float]:
    scale_x = cos(radians(origin_lat)) * M_PER_DEG
    return (lon - origin_lon) * scale_x, (lat - origin_lat) * M_PER_DEG


def point_to_segment(
    lat: float, lon: float,
    a_lat: float, a_lon: float,
    b_lat: float, b_lon: float,
) -> Projection:
    """
    Project a point onto the segment a->b.

    Uses an equirectangular approximation centred on ``a``; ``t`` is the
    clamped projection parameter (0 at ``a``, 1 at ``b``). Segments shorter
    than 1 mm collapse to ``a`` with ``t = 0``.
    """
    if haversine_m(a_lat, a_lon, b_lat, b_lon) < _MIN_SEGMENT_M:
        return Projection(distance_m=haversine_m(lat, lon, a_lat, a_lon), t=0.0)

    bx, by = _local_xy(b_lat, b_lon, a_lat, a_lon)
    px, py = _local_xy(lat, lon, a_lat, a_lon)

    t = (px * bx + py * by) / (bx * bx + by * by)
    t = max(0.0, min(1.0, t))

    proj_x = t * bx
    proj_y = t * by
    return Projection(distance_m=sqrt((px - proj_x) ** 2 + (py - proj_y) ** 2), t=t)


def interpolate(a: GeoNode, b: GeoNode, t: float) -> GeoNode:
    """Linear interpolation between two geographic points (t in [0,1])."""
    return GeoNode(lat=a.lat + t * (b.lat - a.lat), lon=a.lon + t * (b.lon - a.lon))
