import pytest
from pydantic import ValidationError

from conftest import offset, report
from route_match.core.models import AccuracyTier, PositionReport, RoadAttributes
from route_match.core.stats import DataQuality, compute_statistics


class TestAccuracyTier:
    @pytest.mark.parametrize(
        "hdop,tier",
        [
            (0.5, AccuracyTier.EXCELLENT),
            (1.0, AccuracyTier.EXCELLENT),
            (2.0, AccuracyTier.GOOD),
            (4.9, AccuracyTier.MODERATE),
            (10.0, AccuracyTier.FAIR),
            (10.1, AccuracyTier.POOR),
        ],
    )
    def test_from_hdop(self, hdop, tier):
        assert AccuracyTier.from_hdop(hdop) is tier

    def test_recommended_distance_grows_with_worse_accuracy(self):
        dists = [t.recommended_match_m for t in AccuracyTier]
        assert dists == sorted(dists)


class TestPositionReport:
    def test_valid(self):
        assert report(37.5, 127.0).is_valid()

    @pytest.mark.parametrize(
        "field,value",
        [("lat", 91.0), ("lon", -181.0), ("heading_deg", 361.0), ("speed_kmh", 301.0), ("hdop", 51.0), ("hdop", -1.0)],
    )
    def test_out_of_range_is_invalid(self, field, value):
        data = dict(lat=37.5, lon=127.0, heading_deg=0.0, speed_kmh=30.0, hdop=1.0)
        data[field] = value
        assert not PositionReport(**data).is_valid()

    def test_frozen(self):
        p = report(37.5, 127.0)
        with pytest.raises(ValidationError):
            p.lat = 0.0


class TestRoadAttributes:
    def test_defaults(self):
        a = RoadAttributes()
        assert a.max_speed_kmh() == 50.0
        assert a.lane_count() == 2
        assert not a.is_oneway
        assert a.is_accessible
        assert a.is_paved
        assert a.describe() == "unnamed road"

    def test_tag_interpretation(self):
        a = RoadAttributes(
            maxspeed="60 km/h", lanes="4", oneway="-1", access="private",
            surface="gravel", junction="roundabout", bridge="yes",
        )
        assert a.max_speed_kmh() == 60.0
        assert a.lane_count() == 4
        assert a.oneway_direction == -1
        assert a.is_oneway
        assert not a.is_accessible
        assert not a.is_paved
        assert a.is_roundabout
        assert a.is_special_structure
        assert a.is_speed_anomalous(110.0)
        assert not a.is_speed_anomalous(100.0)

    def test_describe(self):
        a = RoadAttributes(
            road_id=5, highway="primary", maxspeed="60 km/h", lanes="4", oneway="-1",
            access="private", surface="gravel", junction="roundabout", bridge="yes",
        )
        assert a.describe() == (
            "way 5, primary, 60 km/h, 4 lanes, one-way (reverse), roundabout, "
            "bridge/tunnel, unpaved, access=private"
        )
        assert RoadAttributes(name="Main Street", oneway="yes").describe() == "Main Street, one-way"

    def test_bad_lane_count_falls_back(self):
        assert RoadAttributes(lanes="2;3").lane_count() == 2


class TestComputeStatistics:
    def test_empty(self):
        s = compute_statistics([])
        assert s.total_points == 0
        assert s.overall_quality is DataQuality.POOR
        assert s.estimated_travel_minutes == 0.0

    def test_summary(self):
        lat, lon = 37.5, 127.03
        reports = []
        for i, hdop in enumerate([0.8, 0.9, 1.5, 4.0, 12.0]):
            reports.append(report(lat, lon, speed=30.0 + i * 10, hdop=hdop, seq=i))
            lat, lon = offset(lat, lon, 0.0, 10.0)

        s = compute_statistics(reports)
        assert s.total_points == 5
        assert s.total_distance_m == pytest.approx(40.0, abs=0.5)
        assert (s.min_speed_kmh, s.max_speed_kmh, s.avg_speed_kmh) == (30.0, 70.0, 50.0)
        assert s.tier_counts[AccuracyTier.EXCELLENT] == 2
        assert s.tier_counts[AccuracyTier.POOR] == 1
        assert s.map_matching_suitability == pytest.approx(0.6)
        assert s.off_route_suitability == pytest.approx(0.8)
        assert s.overall_quality is DataQuality.GOOD
        assert s.to_dict()["tier_counts"]["good"] == 1

    def test_all_excellent(self):
        s = compute_statistics([report(37.5, 127.03, hdop=0.5, seq=i) for i in range(3)])
        assert s.overall_quality is DataQuality.EXCELLENT
