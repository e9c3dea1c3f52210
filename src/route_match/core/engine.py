from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
from typing import List, Mapping, Optional, Sequence

from route_match.config import Settings
from route_match.contracts.match_contract import MatchResult
from route_match.core.deviation import DeviationRule, DeviationVerdict, TrajectoryClass, analyze_deviation
from route_match.core.matcher import DEFAULT_ACCURACY_TIERS, AccuracyTierRule, MapMatcher
from route_match.core.models import PositionReport
from route_match.core.quality import FilterRejection, FilterResult, filter_positions
from route_match.core.route import ReferencePath
from route_match.core.stats import PositionStatistics, compute_statistics


@dataclass(frozen=True)
class TrajectoryReport:
    """Everything the result consumers need for one trajectory."""

    name: str
    original: List[PositionReport]
    kept: List[PositionReport]
    rejected: List[FilterRejection]
    results: List[MatchResult]
    verdict: DeviationVerdict
    stats: PositionStatistics

    @property
    def matched_count(self) -> int:
        return sum(1 for r in self.results if r.matched)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "original_count": len(self.original),
            "kept_count": len(self.kept),
            "rejected": [
                {"seq": r.report.seq, "index": r.index, "rule": r.rule.value, "reason": r.reason}
                for r in self.rejected
            ],
            "results": [r.to_dict() for r in self.results],
            "verdict": self.verdict.to_dict(),
            "stats": self.stats.to_dict(),
        }


def build_matcher(
    path: ReferencePath,
    settings: Settings,
    strategy: Optional[str] = None,
    tiers: Sequence[AccuracyTierRule] = DEFAULT_ACCURACY_TIERS,
) -> MapMatcher:
    return MapMatcher(
        path,
        matching_threshold_m=settings.matching_threshold_m,
        off_route_threshold_m=settings.off_route_threshold_m,
        strategy=strategy or settings.strategy,
        tiers=tiers,
        scoring=settings.scoring_config(),
    )


def run_engine(
    reports: Sequence[PositionReport],
    path: ReferencePath,
    trajectory_class: str | TrajectoryClass = TrajectoryClass.GENERAL,
    settings: Optional[Settings] = None,
    name: str = "",
    matcher: Optional[MapMatcher] = None,
    rules: Optional[Mapping[TrajectoryClass, DeviationRule]] = None,
    tiers: Sequence[AccuracyTierRule] = DEFAULT_ACCURACY_TIERS,
) -> TrajectoryReport:
    """
    Filter, match and analyse one trajectory; each stage sees the previous stage's full output.

    ``rules`` replaces the default deviation rule table and ``tiers`` the
    accuracy tiers of the matcher built here (ignored when ``matcher`` is given).
    """
    cfg = settings or Settings()
    matcher = matcher or build_matcher(path, cfg, tiers=tiers)

    if cfg.filter_enabled:
        filtered = filter_positions(reports, cfg.filter_config())
    else:
        filtered = FilterResult(kept=list(reports), rejected=[])

    results = matcher.match_points(filtered.kept)
    verdict = analyze_deviation(results, trajectory_class, rules, original_count=len(reports))

    return TrajectoryReport(
        name=name,
        original=list(reports),
        kept=filtered.kept,
        rejected=filtered.rejected,
        results=results,
        verdict=verdict,
        stats=compute_statistics(reports),
    )


# ---------------------------------------------------------------------------
# Batch summary (fold over trajectory reports)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BatchSummary:
    trajectories: int = 0
    total_points: int = 0
    matched_points: int = 0
    off_route_trajectories: int = 0
    expectation_hits: int = 0
    names: tuple = field(default_factory=tuple)

    @property
    def matching_rate(self) -> float:
        return self.matched_points / self.total_points if self.total_points else 0.0

    def add(self, report: TrajectoryReport) -> BatchSummary:
        return BatchSummary(
            trajectories=self.trajectories + 1,
            total_points=self.total_points + len(report.results),
            matched_points=self.matched_points + report.matched_count,
            off_route_trajectories=self.off_route_trajectories + int(report.verdict.off_route),
            expectation_hits=self.expectation_hits + int(report.verdict.meets_expectation),
            names=self.names + (report.name,),
        )


def summarize(reports: Sequence[TrajectoryReport]) -> BatchSummary:
    return reduce(BatchSummary.add, reports, BatchSummary())
