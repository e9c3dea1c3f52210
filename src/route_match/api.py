"""FastAPI REST backend for the route-match engine."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from route_match.config import Settings, settings
from route_match.contracts.route_contract import GeoNode
from route_match.core.deviation import TrajectoryClass
from route_match.core.engine import build_matcher, run_engine
from route_match.core.models import PositionReport, RoadAttributes
from route_match.core.route import ReferencePath, RouteSegment

log = logging.getLogger(__name__)

app = FastAPI(title="Route Match", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class NodeIn(BaseModel):
    lat: float
    lon: float


class SegmentIn(BaseModel):
    road_id: Optional[int] = None
    name: Optional[str] = None
    nodes: List[NodeIn] = Field(..., min_length=1)


class MatchRequest(BaseModel):
    segments: List[SegmentIn] = []
    reports: List[PositionReport]
    trajectory_class: str = "general"
    strategy: Optional[str] = None
    filter: bool = True
    # (min_lat, min_lon, max_lat, max_lon); omitted means no area check
    area: Optional[List[float]] = Field(default=None, min_length=4, max_length=4)


class MatchResponse(BaseModel):
    name: str = "api"
    kept_count: int
    rejected: List[Dict[str, Any]] = []
    results: List[Dict[str, Any]]
    verdict: Dict[str, Any]
    stats: Dict[str, Any] = {}


def _build_path(segments: List[SegmentIn]) -> ReferencePath:
    return ReferencePath(
        [
            RouteSegment(
                [GeoNode(lat=n.lat, lon=n.lon) for n in s.nodes],
                road_id=s.road_id,
                attributes=RoadAttributes(road_id=s.road_id, name=s.name),
            )
            for s in segments
        ],
        path_id="api",
    )


def _request_settings(req: MatchRequest) -> Settings:
    update: Dict[str, Any] = {
        "filter_enabled": req.filter,
        "area": tuple(req.area) if req.area is not None else None,
    }
    return settings.model_copy(update=update)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "ok", "strategy": settings.strategy}


@app.post("/match", response_model=MatchResponse)
def match(req: MatchRequest):
    try:
        tclass = TrajectoryClass.parse(req.trajectory_class)
        cfg = _request_settings(req)
        path = _build_path(req.segments)
        matcher = build_matcher(path, cfg, strategy=req.strategy)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if not path.segments:
        log.warning("match request with an empty reference path (%d reports)", len(req.reports))

    report = run_engine(req.reports, path, tclass, settings=cfg, name="api", matcher=matcher)
    out = report.to_dict()
    return MatchResponse(
        name=out["name"],
        kept_count=out["kept_count"],
        rejected=out["rejected"],
        results=out["results"],
        verdict=out["verdict"],
        stats=out["stats"],
    )


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [api] %(levelname)s %(message)s")
    uvicorn.run("route_match.api:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
