"""Run-length analysis of per-point match verdicts into off-route episodes."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Sequence

from route_match.contracts.match_contract import MatchResult
from route_match.contracts.route_contract import Episode


class TrajectoryClass(str, Enum):
    """Expected manoeuvre of a trajectory, supplied by the caller."""

    TURN = "turn"
    REVERSAL = "reversal"
    STRAIGHT = "straight"
    MULTIPATH = "multipath"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: str | TrajectoryClass) -> TrajectoryClass:
        if isinstance(value, TrajectoryClass):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown trajectory class: {value!r}") from None


class DeviationStatistic(str, Enum):
    RUN_LENGTH = "run_length"  # longest consecutive unmatched run
    RATIO = "ratio"            # unmatched share of the whole trajectory


@dataclass(frozen=True)
class DeviationRule:
    """
    How a trajectory class turns unmatched points into an off-route verdict.

    RUN_LENGTH fires when the longest run is >= threshold; RATIO fires when
    the unmatched ratio is > threshold.
    """

    statistic: DeviationStatistic
    threshold: float
    expects_deviation: bool = False
    assume_position_error: bool = False

    def fires(self, run_length: int, ratio: float) -> bool:
        if self.statistic is DeviationStatistic.RUN_LENGTH:
            return run_length >= self.threshold
        return ratio > self.threshold


# Starting defaults tuned on a small sample of drives; callers may pass their own table.
DEFAULT_DEVIATION_RULES: Dict[TrajectoryClass, DeviationRule] = {
    TrajectoryClass.TURN: DeviationRule(DeviationStatistic.RUN_LENGTH, 3, expects_deviation=True),
    TrajectoryClass.REVERSAL: DeviationRule(DeviationStatistic.RATIO, 0.7, expects_deviation=True),
    TrajectoryClass.STRAIGHT: DeviationRule(DeviationStatistic.RUN_LENGTH, 5),
    TrajectoryClass.MULTIPATH: DeviationRule(DeviationStatistic.RUN_LENGTH, 7, assume_position_error=True),
    TrajectoryClass.GENERAL: DeviationRule(DeviationStatistic.RATIO, 0.5),
}

POSITION_ERROR_FILTERED_RATIO = 0.10
POSITION_ERROR_MATCH_RATIO = 0.70


@dataclass(frozen=True)
class DeviationVerdict:
    off_route: bool
    start_index: int
    end_index: int
    run_length: int
    total_off_route_points: int
    matching_rate: float
    off_route_ratio: float
    trajectory_class: TrajectoryClass
    rule: DeviationRule
    has_position_error: bool
    reason: str

    @property
    def expected_off_route(self) -> bool:
        return self.rule.expects_deviation

    @property
    def meets_expectation(self) -> bool:
        return self.off_route == self.rule.expects_deviation

    def to_dict(self) -> dict:
        return {
            "off_route": self.off_route,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "run_length": self.run_length,
            "total_off_route_points": self.total_off_route_points,
            "matching_rate": self.matching_rate,
            "off_route_ratio": self.off_route_ratio,
            "trajectory_class": self.trajectory_class.value,
            "statistic": self.rule.statistic.value,
            "threshold": self.rule.threshold,
            "has_position_error": self.has_position_error,
            "expected_off_route": self.expected_off_route,
            "meets_expectation": self.meets_expectation,
            "reason": self.reason,
        }


def longest_unmatched_run(flags: Sequence[bool]) -> Episode:
    """Longest run of ``True`` values; the earliest wins on ties."""
    best = Episode()
    start = -1
    length = 0
    for i, flag in enumerate(flags):
        if flag:
            if start == -1:
                start = i
            length += 1
            continue
        if length > best.length:
            best = Episode(start=start, end=start + length - 1, length=length)
        start, length = -1, 0

    if length > best.length:
        best = Episode(start=start, end=start + length - 1, length=length)
    return best


def _describe(
    trajectory_class: TrajectoryClass,
    matching_rate: float,
    off_route: bool,
    episode: Episode,
    total_unmatched: int,
) -> str:
    text = f"{trajectory_class.value} trajectory - matching rate {matching_rate * 100:.1f}%"
    if off_route:
        text += " -> off route"
        if episode.found:
            text += f" (points {episode.start + 1}-{episode.end + 1}, {total_unmatched} unmatched in total)"
        return text
    text += " -> on route"
    if total_unmatched:
        text += f" ({total_unmatched} transient mismatches)"
    return text


def analyze_deviation(
    results: Sequence[MatchResult],
    trajectory_class: str | TrajectoryClass = TrajectoryClass.GENERAL,
    rules: Optional[Mapping[TrajectoryClass, DeviationRule]] = None,
    *,
    original_count: Optional[int] = None,
) -> DeviationVerdict:
    """
    Judge whether a matched trajectory left the reference path.

    ``original_count`` is the number of raw reports before filtering; when
    given, a heavy filter loss also flags a position error.
    """
    tclass = TrajectoryClass.parse(trajectory_class)
    table = rules if rules is not None else DEFAULT_DEVIATION_RULES
    if tclass not in table:
        raise ValueError(f"No deviation rule configured for trajectory class {tclass.value!r}")
    rule = table[tclass]

    unmatched = [not r.matched for r in results]
    total_unmatched = sum(unmatched)
    n = len(results)
    matched = n - total_unmatched

    episode = longest_unmatched_run(unmatched)
    ratio = total_unmatched / n if n else 0.0
    matching_rate = matched / n if n else 0.0
    off_route = rule.fires(episode.length, ratio) if n else False

    position_error = rule.assume_position_error
    if n and matched < n * POSITION_ERROR_MATCH_RATIO:
        position_error = True
    if original_count and (original_count - n) > original_count * POSITION_ERROR_FILTERED_RATIO:
        position_error = True

    return DeviationVerdict(
        off_route=off_route,
        start_index=episode.start,
        end_index=episode.end,
        run_length=episode.length,
        total_off_route_points=total_unmatched,
        matching_rate=matching_rate,
        off_route_ratio=ratio,
        trajectory_class=tclass,
        rule=rule,
        has_position_error=position_error,
        reason=_describe(tclass, matching_rate, off_route, episode, total_unmatched),
    )
