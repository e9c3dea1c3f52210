"""Candidate acceptance strategies used by the map matcher."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

from route_match.core.geometry import angle_diff_deg
from route_match.core.models import PositionReport
from route_match.core.route import RouteSegment


class StrategyName(str, Enum):
    DISTANCE = "distance"
    HEADING = "heading"
    WEIGHTED = "weighted"
    SPEED = "speed"


@dataclass(frozen=True)
class ScoringConfig:
    heading_tolerance_deg: float = 60.0
    min_speed_kmh: float = 5.0
    max_speed_kmh: float = 120.0

    distance_weight: float = 0.6
    heading_weight: float = 0.2
    speed_weight: float = 0.2
    accept_score: float = 0.6
    stationary_speed_score: float = 0.5
    # zero the speed signal when a tagged maxspeed is exceeded by more than 80%
    speed_limit_check: bool = False


def _clamp01(x: float) -> float:
    return max(0.0, min(1.0, float(x)))


def heading_matches(report: PositionReport, segment: RouteSegment, tolerance_deg: float) -> bool:
    """Report heading within tolerance of the segment's end-to-end bearing."""
    seg_heading = segment.heading_deg
    if seg_heading is None:
        # direction undefined for a single-node segment
        return True
    return angle_diff_deg(report.heading_deg, seg_heading) <= tolerance_deg


class ScoringStrategy(ABC):
    """Decide whether a candidate within the distance threshold is accepted."""

    name: StrategyName

    def __init__(self, config: ScoringConfig | None = None):
        self.config = config or ScoringConfig()

    @abstractmethod
    def score_candidate(self, report: PositionReport, segment: RouteSegment, distance_m: float) -> bool:
        raise NotImplementedError


class DistanceOnlyStrategy(ScoringStrategy):
    name = StrategyName.DISTANCE

    def score_candidate(self, report: PositionReport, segment: RouteSegment, distance_m: float) -> bool:
        return True


class HeadingAwareStrategy(ScoringStrategy):
    name = StrategyName.HEADING

    def score_candidate(self, report: PositionReport, segment: RouteSegment, distance_m: float) -> bool:
        return heading_matches(report, segment, self.config.heading_tolerance_deg)


class WeightedStrategy(ScoringStrategy):
    """
    Weighted blend of distance, heading and speed signals.

    distance: 1 at the centreline, 0 at the *base* matching threshold
    heading:  1 if the heading-aware test passes, else 0
    speed:    1 while moving, ``stationary_speed_score`` when stopped,
              0 over the road's speed limit when ``speed_limit_check`` is on
    """

    name = StrategyName.WEIGHTED

    def __init__(self, config: ScoringConfig | None = None, matching_threshold_m: float = 30.0):
        super().__init__(config)
        self.matching_threshold_m = matching_threshold_m

    def _speed_score(self, report: PositionReport, segment: RouteSegment) -> float:
        c = self.config
        if report.speed_kmh <= 0:
            return c.stationary_speed_score
        attrs = segment.attributes
        if c.speed_limit_check and attrs.maxspeed and attrs.is_speed_anomalous(report.speed_kmh):
            return 0.0
        return 1.0

    def score(self, report: PositionReport, segment: RouteSegment, distance_m: float) -> float:
        c = self.config
        distance_score = _clamp01(1.0 - distance_m / max(1e-9, self.matching_threshold_m))
        heading_score = 1.0 if heading_matches(report, segment, c.heading_tolerance_deg) else 0.0
        speed_score = self._speed_score(report, segment)
        return (
            distance_score * c.distance_weight
            + heading_score * c.heading_weight
            + speed_score * c.speed_weight
        )

    def score_candidate(self, report: PositionReport, segment: RouteSegment, distance_m: float) -> bool:
        return self.score(report, segment, distance_m) >= self.config.accept_score


class SpeedAwareStrategy(ScoringStrategy):
    name = StrategyName.SPEED

    def score_candidate(self, report: PositionReport, segment: RouteSegment, distance_m: float) -> bool:
        return self.config.min_speed_kmh <= report.speed_kmh <= self.config.max_speed_kmh


def build_strategy(
    name: str | StrategyName,
    config: ScoringConfig | None = None,
    matching_threshold_m: float = 30.0,
) -> ScoringStrategy:
    """
    Build a strategy from its name ("distance", "heading", "weighted", "speed").

    An unknown name means the matcher was wired incorrectly, so it raises.
    """
    token = name.value if isinstance(name, StrategyName) else str(name).strip().lower()
    if token == StrategyName.DISTANCE.value:
        return DistanceOnlyStrategy(config)
    if token == StrategyName.HEADING.value:
        return HeadingAwareStrategy(config)
    if token == StrategyName.WEIGHTED.value:
        return WeightedStrategy(config, matching_threshold_m=matching_threshold_m)
    if token == StrategyName.SPEED.value:
        return SpeedAwareStrategy(config)
    raise ValueError(f"Unknown scoring strategy: {name!r}")
