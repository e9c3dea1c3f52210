"""Reference path model: ordered road segments with precomputed lengths."""
from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

from route_match.contracts.route_contract import GeoNode, Projection
from route_match.core.geometry import bearing_deg, haversine_m, interpolate, point_to_segment
from route_match.core.models import RoadAttributes


class RouteSegment:
    """
    One road polyline.

    ``length_m`` and the per-node ``cumulative_m`` table are computed once
    here and never change afterwards.
    """

    def __init__(
        self,
        nodes: Sequence[GeoNode],
        road_id: Optional[int] = None,
        attributes: Optional[RoadAttributes] = None,
    ):
        self._nodes: Tuple[GeoNode, ...] = tuple(nodes)
        self.road_id = road_id
        self.attributes = attributes or RoadAttributes(road_id=road_id)

        cum: list[float] = [0.0]
        for i in range(1, len(self._nodes)):
            a, b = self._nodes[i - 1], self._nodes[i]
            cum.append(cum[-1] + haversine_m(a.lat, a.lon, b.lat, b.lon))
        self._cumulative: Tuple[float, ...] = tuple(cum)

    @property
    def nodes(self) -> Tuple[GeoNode, ...]:
        return self._nodes

    @property
    def cumulative_m(self) -> Tuple[float, ...]:
        return self._cumulative

    @property
    def length_m(self) -> float:
        return self._cumulative[-1]

    @property
    def name(self) -> Optional[str]:
        return self.attributes.name

    @property
    def heading_deg(self) -> Optional[float]:
        """Straight-line bearing from the first to the last node."""
        if len(self._nodes) < 2:
            return None
        a, b = self._nodes[0], self._nodes[-1]
        return bearing_deg(a.lat, a.lon, b.lat, b.lon)

    # ------------------------------------------------------------------

    def _nearest_pair(self, lat: float, lon: float) -> Tuple[int, Projection]:
        """Index of the closest consecutive node pair and its projection."""
        best_i = 0
        best: Optional[Projection] = None
        for i in range(len(self._nodes) - 1):
            a, b = self._nodes[i], self._nodes[i + 1]
            proj = point_to_segment(lat, lon, a.lat, a.lon, b.lat, b.lon)
            if best is None or proj.distance_m < best.distance_m:
                best_i, best = i, proj
        assert best is not None
        return best_i, best

    def distance_to_point(self, lat: float, lon: float) -> float:
        if not self._nodes:
            return math.inf
        if len(self._nodes) == 1:
            n = self._nodes[0]
            return haversine_m(lat, lon, n.lat, n.lon)
        return self._nearest_pair(lat, lon)[1].distance_m

    def progress_at_point(self, lat: float, lon: float) -> float:
        """Fraction (0..1) of the segment length travelled at the projection of the point."""
        if len(self._nodes) < 2 or self.length_m <= 0:
            return 0.0
        i, proj = self._nearest_pair(lat, lon)
        start = self._cumulative[i]
        span = self._cumulative[i + 1] - start
        progress = (start + span * proj.t) / self.length_m
        return max(0.0, min(1.0, progress))

    def snap(self, lat: float, lon: float) -> Optional[GeoNode]:
        """Closest point on the polyline (planar projection)."""
        if not self._nodes:
            return None
        if len(self._nodes) == 1:
            n = self._nodes[0]
            return GeoNode(lat=n.lat, lon=n.lon)
        i, proj = self._nearest_pair(lat, lon)
        return interpolate(self._nodes[i], self._nodes[i + 1], proj.t)

    def __repr__(self) -> str:
        return f"RouteSegment(road_id={self.road_id}, nodes={len(self._nodes)}, length_m={self.length_m:.2f})"


class ReferencePath:
    """Ordered, read-only sequence of segments the vehicle is expected to follow."""

    def __init__(self, segments: Iterable[RouteSegment] = (), path_id: str = "reference", name: str = ""):
        self.path_id = path_id
        self.name = name
        self._segments: Tuple[RouteSegment, ...] = tuple(segments)
        self._total_m = sum(s.length_m for s in self._segments)

    @property
    def segments(self) -> Tuple[RouteSegment, ...]:
        return self._segments

    @property
    def total_length_m(self) -> float:
        return self._total_m

    def __len__(self) -> int:
        return len(self._segments)

    def find_nearest_segment(self, lat: float, lon: float) -> Optional[RouteSegment]:
        nearest: Optional[RouteSegment] = None
        best = math.inf
        for seg in self._segments:
            d = seg.distance_to_point(lat, lon)
            # strict comparison keeps the first of equally close segments
            if nearest is None or d < best:
                nearest, best = seg, d
        return nearest

    def progress_at_point(self, lat: float, lon: float) -> float:
        nearest = self.find_nearest_segment(lat, lon)
        if nearest is None or self._total_m <= 0:
            return 0.0

        travelled = 0.0
        for seg in self._segments:
            if seg is nearest:
                break
            travelled += seg.length_m
        travelled += nearest.length_m * nearest.progress_at_point(lat, lon)
        return travelled / self._total_m

    def is_off_route(self, lat: float, lon: float, threshold_m: float) -> bool:
        nearest = self.find_nearest_segment(lat, lon)
        if nearest is None:
            return True
        return nearest.distance_to_point(lat, lon) > threshold_m

    def all_nodes(self) -> List[GeoNode]:
        return [n for seg in self._segments for n in seg.nodes]

    def __repr__(self) -> str:
        return (
            f"ReferencePath(path_id={self.path_id!r}, segments={len(self._segments)}, "
            f"total_length_m={self._total_m:.2f})"
        )
