"""Nearest-segment map matcher with accuracy-adaptive thresholds."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from route_match.contracts.match_contract import MatchResult
from route_match.core.models import PositionReport
from route_match.core.route import ReferencePath
from route_match.core.scoring import ScoringConfig, ScoringStrategy, StrategyName, build_strategy

log = logging.getLogger(__name__)

REASON_MATCHED = "matched"
REASON_INVALID = "invalid input"
REASON_EMPTY_PATH = "empty reference path"
REASON_STRATEGY = "strategy validation failed"


@dataclass(frozen=True)
class AccuracyTierRule:
    max_hdop: float  # inclusive upper bound of the tier
    factor: float


# Best tier first; the last rule catches everything above the previous bound.
DEFAULT_ACCURACY_TIERS: Tuple[AccuracyTierRule, ...] = (
    AccuracyTierRule(max_hdop=1.0, factor=0.7),
    AccuracyTierRule(max_hdop=2.0, factor=0.9),
    AccuracyTierRule(max_hdop=5.0, factor=1.0),
    AccuracyTierRule(max_hdop=10.0, factor=1.3),
    AccuracyTierRule(max_hdop=math.inf, factor=1.8),
)


def adjusted_threshold(base_m: float, hdop: float, tiers: Sequence[AccuracyTierRule] = DEFAULT_ACCURACY_TIERS) -> float:
    """Scale the base matching distance by the factor of the hdop's tier."""
    for rule in tiers:
        if hdop <= rule.max_hdop:
            return base_m * rule.factor
    return base_m * tiers[-1].factor if tiers else base_m


class MapMatcher:
    """
    Match position reports against a fixed reference path.

    Each report is judged on its own; the matcher keeps no state between
    calls, so ``match_points`` is repeatable for the same input.
    """

    def __init__(
        self,
        path: ReferencePath,
        matching_threshold_m: float = 30.0,
        off_route_threshold_m: float = 50.0,
        strategy: str | StrategyName | ScoringStrategy = StrategyName.WEIGHTED,
        tiers: Sequence[AccuracyTierRule] = DEFAULT_ACCURACY_TIERS,
        scoring: Optional[ScoringConfig] = None,
    ):
        self.path = path
        self.matching_threshold_m = matching_threshold_m
        self.off_route_threshold_m = off_route_threshold_m
        self.tiers = tuple(tiers)
        if isinstance(strategy, ScoringStrategy):
            self.strategy = strategy
        else:
            self.strategy = build_strategy(strategy, scoring, matching_threshold_m=matching_threshold_m)

    def threshold_for(self, report: PositionReport) -> float:
        return adjusted_threshold(self.matching_threshold_m, report.hdop, self.tiers)

    def match_point(self, report: PositionReport) -> MatchResult:
        if not report.is_valid():
            return MatchResult(report=report, matched=False, reason=REASON_INVALID)

        threshold = self.threshold_for(report)

        segment = self.path.find_nearest_segment(report.lat, report.lon)
        if segment is None:
            return MatchResult(report=report, matched=False, reason=REASON_EMPTY_PATH, threshold_m=threshold)

        distance = segment.distance_to_point(report.lat, report.lon)
        if distance > threshold:
            return MatchResult(
                report=report,
                matched=False,
                reason=f"distance {distance:.2f}m exceeds threshold {threshold:.2f}m",
                threshold_m=threshold,
            )

        if not self.strategy.score_candidate(report, segment, distance):
            return MatchResult(report=report, matched=False, reason=REASON_STRATEGY, threshold_m=threshold)

        return MatchResult(
            report=report,
            matched=True,
            reason=REASON_MATCHED,
            segment=segment,
            distance_m=distance,
            segment_progress=segment.progress_at_point(report.lat, report.lon),
            overall_progress=self.path.progress_at_point(report.lat, report.lon),
            threshold_m=threshold,
            snapped=segment.snap(report.lat, report.lon),
        )

    def match_points(self, reports: Sequence[PositionReport]) -> List[MatchResult]:
        if not reports:
            return []

        log.info("matching %d points (strategy=%s)", len(reports), self.strategy.name.value)
        results = [self.match_point(r) for r in reports]

        matched = sum(1 for r in results if r.matched)
        log.info(
            "matching done: %d matched, %d unmatched (%.1f%%)",
            matched, len(results) - matched, 100.0 * matched / len(results),
        )
        return results

    def is_off_route(self, report: PositionReport) -> bool:
        if not report.is_valid():
            return True
        return self.path.is_off_route(report.lat, report.lon, self.off_route_threshold_m)
