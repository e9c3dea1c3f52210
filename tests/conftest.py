from math import cos, radians, sin

import pytest

from route_match.contracts.route_contract import GeoNode
from route_match.core.models import PositionReport
from route_match.core.route import ReferencePath, RouteSegment

M_PER_DEG = 111_320.0


def offset(lat: float, lon: float, bearing: float, metres: float) -> tuple[float, float]:
    """Move ``metres`` from (lat, lon) along ``bearing``."""
    b = radians(bearing)
    return (
        lat + metres * cos(b) / M_PER_DEG,
        lon + metres * sin(b) / (M_PER_DEG * cos(radians(lat))),
    )


def report(lat, lon, heading=0.0, speed=36.0, hdop=0.8, seq=0) -> PositionReport:
    return PositionReport(lat=lat, lon=lon, heading_deg=heading, speed_kmh=speed, hdop=hdop, seq=seq)


@pytest.fixture
def straight_segment():
    # ~111 m due north from the origin
    return RouteSegment([GeoNode(0.0, 0.0), GeoNode(0.001, 0.0)], road_id=1)


@pytest.fixture
def straight_path(straight_segment):
    return ReferencePath([straight_segment], path_id="straight")


@pytest.fixture
def north_path():
    """Two ~222 m segments heading north inside the default operating area."""
    a = GeoNode(37.500, 127.030)
    b = GeoNode(37.502, 127.030)
    c = GeoNode(37.504, 127.030)
    return ReferencePath(
        [RouteSegment([a, b], road_id=10), RouteSegment([b, c], road_id=11)],
        path_id="north",
    )


@pytest.fixture
def make_report():
    return report
