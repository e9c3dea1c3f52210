# path: route-match/src/route_match/contracts/match_contract.py

from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from route_match.contracts.route_contract import GeoNode
from route_match.core.models import PositionReport
from route_match.core.route import RouteSegment


class MatchQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"
    FAILED = "failed"


@dataclass(frozen=True)
class MatchResult:
    report: PositionReport
    matched: bool
    reason: str
    segment: Optional[RouteSegment] = None
    distance_m: float = math.inf
    segment_progress: float = 0.0
    overall_progress: float = 0.0
    threshold_m: Optional[float] = None  # accuracy-adjusted threshold applied
    snapped: Optional[GeoNode] = None

    @property
    def corrected_position(self) -> GeoNode:
        """Snapped coordinate when matched, raw fix otherwise."""
        if self.matched and self.snapped is not None:
            return self.snapped
        return GeoNode(lat=self.report.lat, lon=self.report.lon)

    @property
    def quality(self) -> MatchQuality:
        if not self.matched:
            return MatchQuality.FAILED
        ref = self.report.accuracy.recommended_match_m
        if self.distance_m <= ref * 0.3:
            return MatchQuality.EXCELLENT
        if self.distance_m <= ref * 0.6:
            return MatchQuality.GOOD
        if self.distance_m <= ref:
            return MatchQuality.MODERATE
        return MatchQuality.POOR

    @property
    def confidence(self) -> float:
        """0..1 blend of fix accuracy, snap distance and segment detail."""
        if not self.matched:
            return 0.0
        tier = self.report.accuracy
        distance_score = max(0.0, 1.0 - self.distance_m / tier.recommended_match_m)
        segment_score = 1.0
        if self.segment is not None and len(self.segment.nodes) >= 2:
            segment_score = min(1.0, len(self.segment.nodes) / 10.0)
        return tier.score * 0.4 + distance_score * 0.5 + segment_score * 0.1

    def is_off_route(self, threshold_m: float) -> bool:
        return not self.matched or self.distance_m > threshold_m

    def to_dict(self) -> Dict[str, Any]:
        corrected = self.corrected_position
        return {
            "seq": self.report.seq,
            "lat": self.report.lat,
            "lon": self.report.lon,
            "matched": self.matched,
            "reason": self.reason,
            "road_id": self.segment.road_id if self.segment is not None else None,
            "distance_m": None if math.isinf(self.distance_m) else round(self.distance_m, 3),
            "threshold_m": self.threshold_m,
            "segment_progress": self.segment_progress,
            "overall_progress": self.overall_progress,
            "corrected_lat": corrected.lat,
            "corrected_lon": corrected.lon,
            "quality": self.quality.value,
            "confidence": round(self.confidence, 4),
        }
