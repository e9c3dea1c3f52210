"""Centralized settings for the route-match engine."""
from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic_settings import BaseSettings

from route_match.core.quality import FilterConfig
from route_match.core.scoring import ScoringConfig


class Settings(BaseSettings):
    model_config = {"env_prefix": "ROUTE_MATCH_"}

    # Matcher
    matching_threshold_m: float = 30.0
    off_route_threshold_m: float = 50.0
    strategy: str = "weighted"           # distance | heading | weighted | speed

    # Scoring strategies
    heading_tolerance_deg: float = 60.0
    min_road_speed_kmh: float = 5.0
    max_road_speed_kmh: float = 120.0
    weighted_accept_score: float = 0.6
    weighted_speed_limit_check: bool = False

    # Quality filter
    filter_enabled: bool = True
    filter_max_hdop: float = 3.0
    filter_max_speed_kmh: float = 150.0
    filter_heading_tolerance_deg: float = 45.0
    filter_jump_floor_m: float = 30.0
    filter_jump_slack: float = 1.5       # >= 1, multiplies the speed-derived max travel
    filter_sample_interval_s: float = 1.0

    # Operating area (min_lat, min_lon, max_lat, max_lon); null disables the check
    area: Optional[Tuple[float, float, float, float]] = (37.49, 127.02, 37.51, 127.04)

    # Reference path: OSM way ids in route order
    reference_way_ids: List[int] = [521766182, 990628459, 472042763, 218864485, 520307304]

    # CLI defaults
    osm_path: str = "data/roads.osm"
    gps_dir: str = "data/gps_files"
    output_dir: str = "output"

    def filter_config(self) -> FilterConfig:
        return FilterConfig(
            max_hdop=self.filter_max_hdop,
            max_speed_kmh=self.filter_max_speed_kmh,
            heading_tolerance_deg=self.filter_heading_tolerance_deg,
            jump_floor_m=self.filter_jump_floor_m,
            jump_slack=max(1.0, self.filter_jump_slack),
            sample_interval_s=self.filter_sample_interval_s,
            area=self.area,
        )

    def scoring_config(self) -> ScoringConfig:
        return ScoringConfig(
            heading_tolerance_deg=self.heading_tolerance_deg,
            min_speed_kmh=self.min_road_speed_kmh,
            max_speed_kmh=self.max_road_speed_kmh,
            accept_score=self.weighted_accept_score,
            speed_limit_check=self.weighted_speed_limit_check,
        )


settings = Settings()
