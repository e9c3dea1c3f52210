from __future__ import annotations

from abc import ABC, abstractmethod
from route_match.core.models import PositionReport


class PositionSource(ABC):
    """Supply the ordered position reports of one trajectory."""

    @abstractmethod
    def get_positions(self) -> list[PositionReport]:
        raise NotImplementedError
