from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from route_match.core.geometry import bearing_deg, haversine_m


class AccuracyTier(str, Enum):
    """HDOP bands, best first."""

    EXCELLENT = "excellent"
    GOOD = "good"
    MODERATE = "moderate"
    FAIR = "fair"
    POOR = "poor"

    @classmethod
    def from_hdop(cls, hdop: float) -> AccuracyTier:
        if hdop <= 1.0:
            return cls.EXCELLENT
        if hdop <= 2.0:
            return cls.GOOD
        if hdop <= 5.0:
            return cls.MODERATE
        if hdop <= 10.0:
            return cls.FAIR
        return cls.POOR

    @property
    def recommended_match_m(self) -> float:
        """Largest snap distance still considered plausible at this accuracy."""
        return _RECOMMENDED_MATCH_M[self]

    @property
    def score(self) -> float:
        return _TIER_SCORE[self]


_RECOMMENDED_MATCH_M = {
    AccuracyTier.EXCELLENT: 10.0,
    AccuracyTier.GOOD: 20.0,
    AccuracyTier.MODERATE: 50.0,
    AccuracyTier.FAIR: 100.0,
    AccuracyTier.POOR: 200.0,
}

_TIER_SCORE = {
    AccuracyTier.EXCELLENT: 1.0,
    AccuracyTier.GOOD: 0.8,
    AccuracyTier.MODERATE: 0.6,
    AccuracyTier.FAIR: 0.4,
    AccuracyTier.POOR: 0.2,
}


class PositionReport(BaseModel):
    """
    One sampled vehicle fix.

    Ranges are *not* enforced on construction: readers only guarantee the
    fields parsed as numbers. Use ``is_valid()`` for the semantic check.
    """

    model_config = {"frozen": True}

    lat: float
    lon: float
    heading_deg: float = Field(description="0..360, 0 = north")
    speed_kmh: float
    hdop: float = Field(description="horizontal dilution of precision, lower is better")
    seq: int = 0
    timestamp: Optional[datetime] = None

    def is_valid(self) -> bool:
        return (
            -90.0 <= self.lat <= 90.0
            and -180.0 <= self.lon <= 180.0
            and 0.0 <= self.heading_deg <= 360.0
            and 0.0 <= self.speed_kmh <= 300.0
            and 0.0 <= self.hdop <= 50.0
        )

    @property
    def accuracy(self) -> AccuracyTier:
        return AccuracyTier.from_hdop(self.hdop)

    def distance_to(self, other: PositionReport) -> float:
        return haversine_m(self.lat, self.lon, other.lat, other.lon)

    def bearing_to(self, other: PositionReport) -> float:
        return bearing_deg(self.lat, self.lon, other.lat, other.lon)


def _leading_number(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    m = re.search(r"\d+(?:\.\d+)?", raw)
    return float(m.group(0)) if m else None


class RoadAttributes(BaseModel):
    """Descriptive tags of the road a segment was built from."""

    model_config = {"frozen": True}

    road_id: Optional[int] = None
    name: Optional[str] = None
    highway: Optional[str] = None
    maxspeed: Optional[str] = None
    lanes: Optional[str] = None
    oneway: Optional[str] = None
    access: Optional[str] = None
    surface: Optional[str] = None
    junction: Optional[str] = None
    bridge: Optional[str] = None
    tunnel: Optional[str] = None
    level: Optional[str] = None

    # ---- Tag interpretation ----
    def max_speed_kmh(self, default: float = 50.0) -> float:
        v = _leading_number(self.maxspeed)
        return v if v is not None else default

    def lane_count(self, default: int = 2) -> int:
        try:
            return int(self.lanes) if self.lanes else default
        except ValueError:
            return default

    @property
    def oneway_direction(self) -> int:
        """1 forward, -1 reverse, 0 both ways."""
        if self.oneway in ("yes", "1"):
            return 1
        if self.oneway == "-1":
            return -1
        return 0

    @property
    def is_oneway(self) -> bool:
        return self.oneway_direction != 0

    @property
    def is_accessible(self) -> bool:
        return self.access not in ("no", "private")

    @property
    def is_paved(self) -> bool:
        if not self.surface:
            return True
        return self.surface in ("paved", "asphalt", "concrete", "cobblestone")

    @property
    def is_roundabout(self) -> bool:
        return self.junction == "roundabout"

    @property
    def is_special_structure(self) -> bool:
        return self.bridge == "yes" or self.tunnel == "yes" or (self.level not in (None, "", "0"))

    def is_speed_anomalous(self, speed_kmh: float) -> bool:
        return speed_kmh > self.max_speed_kmh() * 1.8

    def describe(self) -> str:
        """Short human-readable summary used by the exporters."""
        parts = [self.name or (f"way {self.road_id}" if self.road_id is not None else "unnamed road")]
        if self.highway:
            parts.append(self.highway)
        if self.maxspeed:
            parts.append(f"{self.max_speed_kmh():g} km/h")
        if self.lanes:
            parts.append(f"{self.lane_count()} lanes")
        if self.is_oneway:
            parts.append("one-way" if self.oneway_direction > 0 else "one-way (reverse)")
        if self.is_roundabout:
            parts.append("roundabout")
        if self.is_special_structure:
            parts.append("bridge/tunnel")
        if not self.is_paved:
            parts.append("unpaved")
        if not self.is_accessible:
            parts.append(f"access={self.access}")
        return ", ".join(parts)
