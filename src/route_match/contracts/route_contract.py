# path: route-match/src/route_match/contracts/route_contract.py

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GeoNode:
    lat: float
    lon: float
    node_id: Optional[int] = None


@dataclass(frozen=True)
class Projection:
    distance_m: float
    t: float  # 0 at segment start, 1 at segment end


@dataclass(frozen=True)
class Episode:
    start: int = -1
    end: int = -1  # inclusive
    length: int = 0

    @property
    def found(self) -> bool:
        return self.length > 0
