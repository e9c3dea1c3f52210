"""Plausibility filter applied to raw position reports before matching."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import Point, box

from route_match.core.geometry import angle_diff_deg
from route_match.core.models import PositionReport

log = logging.getLogger(__name__)


class FilterRule(str, Enum):
    ACCURACY = "accuracy"
    SPEED = "speed"
    HEADING = "heading"
    JUMP = "jump"
    AREA = "area"


@dataclass(frozen=True)
class FilterConfig:
    max_hdop: float = 3.0
    max_speed_kmh: float = 150.0
    heading_tolerance_deg: float = 45.0
    jump_floor_m: float = 30.0
    jump_slack: float = 1.5
    sample_interval_s: float = 1.0
    # (min_lat, min_lon, max_lat, max_lon); None disables the area check
    area: Optional[Tuple[float, float, float, float]] = None


@dataclass(frozen=True)
class FilterRejection:
    report: PositionReport
    index: int
    rule: FilterRule
    reason: str


@dataclass(frozen=True)
class FilterResult:
    kept: List[PositionReport] = field(default_factory=list)
    rejected: List[FilterRejection] = field(default_factory=list)

    @property
    def rejected_reports(self) -> List[PositionReport]:
        return [r.report for r in self.rejected]


def _check(
    reports: Sequence[PositionReport],
    i: int,
    cfg: FilterConfig,
    area,
) -> Optional[Tuple[FilterRule, str]]:
    """First failing rule for ``reports[i]``; neighbours come from the raw sequence."""
    p = reports[i]

    if p.hdop > cfg.max_hdop:
        return FilterRule.ACCURACY, f"hdop too high ({p.hdop:g} > {cfg.max_hdop:g})"

    if p.speed_kmh < 0 or p.speed_kmh > cfg.max_speed_kmh:
        return FilterRule.SPEED, f"implausible speed ({p.speed_kmh:g} km/h)"

    if 0 < i < len(reports) - 1:
        prev, nxt = reports[i - 1], reports[i + 1]
        expected = prev.bearing_to(p)
        actual = p.bearing_to(nxt)
        diff = angle_diff_deg(p.heading_deg, expected)
        if diff > cfg.heading_tolerance_deg:
            return (
                FilterRule.HEADING,
                f"heading/position mismatch ({diff:.1f}°; heading {p.heading_deg:.1f}°, "
                f"track in {expected:.1f}°, out {actual:.1f}°)",
            )

    if i > 0:
        prev = reports[i - 1]
        dist = prev.distance_to(p)
        max_speed_ms = max(p.speed_kmh, prev.speed_kmh) / 3.6
        expected_max = max_speed_ms * cfg.sample_interval_s * cfg.jump_slack
        if dist > max(cfg.jump_floor_m, expected_max):
            return FilterRule.JUMP, f"implausible jump ({dist:.1f} m)"

    if area is not None and not area.covers(Point(p.lon, p.lat)):
        return FilterRule.AREA, "outside operating area"

    return None


def filter_positions(reports: Sequence[PositionReport], config: Optional[FilterConfig] = None) -> FilterResult:
    """
    Split ``reports`` into kept and rejected, preserving order.

    Rules run in priority order (accuracy, speed, heading, jump, area) and
    the first one that fires decides the rejection reason.
    """
    cfg = config or FilterConfig()
    area = None
    if cfg.area is not None:
        min_lat, min_lon, max_lat, max_lon = cfg.area
        area = box(min_lon, min_lat, max_lon, max_lat)

    kept: List[PositionReport] = []
    rejected: List[FilterRejection] = []
    for i, p in enumerate(reports):
        hit = _check(reports, i, cfg, area)
        if hit is None:
            kept.append(p)
            continue
        rule, reason = hit
        log.debug("filtered point %d (seq=%d): %s", i + 1, p.seq, reason)
        rejected.append(FilterRejection(report=p, index=i, rule=rule, reason=reason))

    if rejected:
        log.info("quality filter removed %d of %d points", len(rejected), len(reports))
    return FilterResult(kept=kept, rejected=rejected)
