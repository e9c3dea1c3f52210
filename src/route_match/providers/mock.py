from __future__ import annotations

from dataclasses import dataclass
from math import cos, radians, sin
from typing import List, Optional, Tuple

from route_match.core.geometry import M_PER_DEG, bearing_deg, haversine_m
from route_match.core.models import PositionReport
from route_match.core.route import ReferencePath
from route_match.providers.base import PositionSource


def _offset(lat: float, lon: float, heading: float, metres: float) -> Tuple[float, float]:
    """Move ``metres`` to the right of ``heading`` (negative = left)."""
    side = radians(heading + 90.0)
    dlat = metres * cos(side) / M_PER_DEG
    dlon = metres * sin(side) / (M_PER_DEG * cos(radians(lat)))
    return lat + dlat, lon + dlon


@dataclass
class MockPositionSource(PositionSource):
    """
    Deterministic fake drive along a reference path so the pipeline runs
    end-to-end without recorded data.

    ``detour`` = (first, last, metres) shifts the inclusive index window
    sideways by ``metres``; ``noisy`` indices get a poor hdop.
    """

    path: ReferencePath
    points: int = 20
    speed_kmh: float = 36.0
    interval_s: float = 1.0
    hdop: float = 0.8
    detour: Optional[Tuple[int, int, float]] = None
    noisy: Tuple[int, ...] = ()

    def get_positions(self) -> List[PositionReport]:
        nodes = self.path.all_nodes()
        if len(nodes) < 2:
            return []

        cum = [0.0]
        for i in range(1, len(nodes)):
            cum.append(cum[-1] + haversine_m(nodes[i - 1].lat, nodes[i - 1].lon, nodes[i].lat, nodes[i].lon))
        total = cum[-1]

        step = self.speed_kmh / 3.6 * self.interval_s
        out: List[PositionReport] = []
        pair = 0
        for k in range(self.points):
            target = min(total, k * step)
            while pair < len(nodes) - 2 and cum[pair + 1] < target:
                pair += 1

            a, b = nodes[pair], nodes[pair + 1]
            span = cum[pair + 1] - cum[pair]
            u = (target - cum[pair]) / span if span > 0 else 0.0
            lat = a.lat + u * (b.lat - a.lat)
            lon = a.lon + u * (b.lon - a.lon)
            heading = bearing_deg(a.lat, a.lon, b.lat, b.lon)

            if self.detour is not None and self.detour[0] <= k <= self.detour[1]:
                lat, lon = _offset(lat, lon, heading, self.detour[2])

            out.append(
                PositionReport(
                    lat=lat,
                    lon=lon,
                    heading_deg=round(heading, 1),
                    speed_kmh=self.speed_kmh,
                    hdop=8.0 if k in self.noisy else self.hdop,
                    seq=k,
                )
            )
        return out
