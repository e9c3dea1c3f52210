"""Descriptive statistics over a trajectory of position reports."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Sequence

from route_match.core.models import AccuracyTier, PositionReport


class DataQuality(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    FAIR = "fair"
    POOR = "poor"


@dataclass(frozen=True)
class PositionStatistics:
    total_points: int = 0
    total_distance_m: float = 0.0
    min_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    avg_speed_kmh: float = 0.0
    min_hdop: float = 0.0
    max_hdop: float = 0.0
    avg_hdop: float = 0.0
    tier_counts: Dict[AccuracyTier, int] = field(default_factory=dict)

    def _share(self, *tiers: AccuracyTier) -> float:
        if self.total_points == 0:
            return 0.0
        return sum(self.tier_counts.get(t, 0) for t in tiers) / self.total_points

    @property
    def map_matching_suitability(self) -> float:
        return self._share(AccuracyTier.EXCELLENT, AccuracyTier.GOOD)

    @property
    def off_route_suitability(self) -> float:
        return self._share(AccuracyTier.EXCELLENT, AccuracyTier.GOOD, AccuracyTier.MODERATE)

    @property
    def overall_quality(self) -> DataQuality:
        mm = self.map_matching_suitability
        orr = self.off_route_suitability
        if mm >= 0.8:
            return DataQuality.EXCELLENT
        if mm >= 0.6:
            return DataQuality.GOOD
        if orr >= 0.7:
            return DataQuality.MODERATE
        if orr >= 0.5:
            return DataQuality.FAIR
        return DataQuality.POOR

    @property
    def estimated_travel_minutes(self) -> float:
        if self.avg_speed_kmh <= 0:
            return 0.0
        return (self.total_distance_m / 1000.0) / self.avg_speed_kmh * 60.0

    def to_dict(self) -> dict:
        return {
            "total_points": self.total_points,
            "total_distance_m": round(self.total_distance_m, 2),
            "min_speed_kmh": self.min_speed_kmh,
            "max_speed_kmh": self.max_speed_kmh,
            "avg_speed_kmh": round(self.avg_speed_kmh, 2),
            "min_hdop": self.min_hdop,
            "max_hdop": self.max_hdop,
            "avg_hdop": round(self.avg_hdop, 3),
            "tier_counts": {t.value: c for t, c in self.tier_counts.items()},
            "map_matching_suitability": round(self.map_matching_suitability, 4),
            "off_route_suitability": round(self.off_route_suitability, 4),
            "overall_quality": self.overall_quality.value,
            "estimated_travel_minutes": round(self.estimated_travel_minutes, 2),
        }


def compute_statistics(reports: Sequence[PositionReport]) -> PositionStatistics:
    if not reports:
        return PositionStatistics()

    speeds = [r.speed_kmh for r in reports]
    hdops = [r.hdop for r in reports]
    distance = sum(reports[i - 1].distance_to(reports[i]) for i in range(1, len(reports)))

    counts: Dict[AccuracyTier, int] = {t: 0 for t in AccuracyTier}
    for r in reports:
        counts[r.accuracy] += 1

    n = len(reports)
    return PositionStatistics(
        total_points=n,
        total_distance_m=distance,
        min_speed_kmh=min(speeds),
        max_speed_kmh=max(speeds),
        avg_speed_kmh=sum(speeds) / n,
        min_hdop=min(hdops),
        max_hdop=max(hdops),
        avg_hdop=sum(hdops) / n,
        tier_counts=counts,
    )
