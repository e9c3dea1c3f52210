"""Tests for off-route episode detection."""

import pytest

from conftest import report
from route_match.contracts.match_contract import MatchResult
from route_match.core.deviation import (
    DEFAULT_DEVIATION_RULES,
    DeviationRule,
    DeviationStatistic,
    TrajectoryClass,
    analyze_deviation,
    longest_unmatched_run,
)


def results_from(flags):
    """One MatchResult per flag; ``True`` means unmatched."""
    return [
        MatchResult(report=report(0.0, 0.0, seq=i), matched=not off, reason="test")
        for i, off in enumerate(flags)
    ]


class TestLongestUnmatchedRun:
    def test_longest_run(self):
        ep = longest_unmatched_run([False, False, True, True, True, False, True, False])
        assert (ep.start, ep.end, ep.length) == (2, 4, 3)

    def test_no_run(self):
        ep = longest_unmatched_run([False, False])
        assert (ep.start, ep.end, ep.length) == (-1, -1, 0)
        assert not ep.found

    def test_empty(self):
        assert not longest_unmatched_run([]).found

    def test_earliest_wins_ties(self):
        ep = longest_unmatched_run([True, True, False, True, True])
        assert (ep.start, ep.end) == (0, 1)

    def test_run_at_the_end(self):
        ep = longest_unmatched_run([False, True, False, True, True])
        assert (ep.start, ep.end, ep.length) == (3, 4, 2)


class TestTrajectoryClass:
    def test_parse(self):
        assert TrajectoryClass.parse("TURN") is TrajectoryClass.TURN
        assert TrajectoryClass.parse(TrajectoryClass.STRAIGHT) is TrajectoryClass.STRAIGHT

    def test_unknown_class_raises(self):
        with pytest.raises(ValueError, match="Unknown trajectory class"):
            TrajectoryClass.parse("loop")

    def test_every_class_has_a_default_rule(self):
        assert set(DEFAULT_DEVIATION_RULES) == set(TrajectoryClass)


class TestAnalyzeDeviation:
    def test_episode_statistics(self):
        v = analyze_deviation(results_from([False, False, True, True, True, False, True, False]))
        assert (v.start_index, v.end_index, v.run_length) == (2, 4, 3)
        assert v.total_off_route_points == 4
        assert v.off_route_ratio == pytest.approx(0.5)
        assert v.matching_rate == pytest.approx(0.5)

    def test_turn_detour_is_off_route(self):
        flags = [False] * 5 + [True] * 5
        v = analyze_deviation(results_from(flags), TrajectoryClass.TURN)
        assert v.off_route
        assert (v.start_index, v.end_index) == (5, 9)
        assert v.expected_off_route
        assert v.meets_expectation
        assert "points 6-10" in v.reason

    def test_run_length_threshold_is_inclusive(self):
        flags = [False, True, True, True, False]
        assert analyze_deviation(results_from(flags), "turn").off_route
        assert not analyze_deviation(results_from([False, True, True, False]), "turn").off_route

    def test_straight_needs_five(self):
        flags = [False] * 3 + [True] * 4 + [False] * 3
        v = analyze_deviation(results_from(flags), "straight")
        assert not v.off_route
        assert v.meets_expectation
        assert v.run_length == 4
        assert "transient" in v.reason

    def test_multipath_needs_seven_and_assumes_position_error(self):
        flags = [False] * 13 + [True] * 7
        v = analyze_deviation(results_from(flags), "multipath")
        assert v.off_route
        assert v.has_position_error

    def test_reversal_uses_ratio(self):
        assert analyze_deviation(results_from([True] * 8 + [False] * 2), "reversal").off_route
        assert not analyze_deviation(results_from([True] * 7 + [False] * 3), "reversal").off_route

    def test_general_ratio_is_strict(self):
        assert not analyze_deviation(results_from([True, False] * 5)).off_route
        assert analyze_deviation(results_from([True, True, False])).off_route

    def test_empty_results(self):
        v = analyze_deviation([], "turn")
        assert not v.off_route
        assert (v.start_index, v.end_index) == (-1, -1)
        assert v.matching_rate == 0.0
        assert not v.meets_expectation

    def test_low_matching_rate_flags_position_error(self):
        flags = [False] * 6 + [True] * 4
        assert analyze_deviation(results_from(flags), "straight").has_position_error
        assert not analyze_deviation(results_from([False] * 10), "straight").has_position_error

    def test_heavy_filtering_flags_position_error(self):
        results = results_from([False] * 8)
        assert analyze_deviation(results, "straight", original_count=10).has_position_error
        assert not analyze_deviation(results, "straight", original_count=8).has_position_error

    def test_custom_rules(self):
        rules = {TrajectoryClass.GENERAL: DeviationRule(DeviationStatistic.RUN_LENGTH, 2)}
        flags = [False, True, True, False, False, False]
        assert analyze_deviation(results_from(flags), rules=rules).off_route

    def test_missing_rule_raises(self):
        rules = {TrajectoryClass.GENERAL: DeviationRule(DeviationStatistic.RATIO, 0.5)}
        with pytest.raises(ValueError):
            analyze_deviation(results_from([False]), "turn", rules=rules)

    def test_to_dict(self):
        d = analyze_deviation(results_from([False, True]), "turn").to_dict()
        assert d["trajectory_class"] == "turn"
        assert d["statistic"] == "run_length"
        assert d["threshold"] == 3
        assert d["off_route"] is False
