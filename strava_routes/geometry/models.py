"""Small value types shared by the geometry helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


LatLon = Tuple[float, float]


@dataclass(slots=True, frozen=True)
class BoundingBox:
    """Axis-aligned lat/lng box enclosing a track."""

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    @property
    def south_west(self) -> LatLon:
        return self.min_lat, self.min_lng

    @property
    def north_east(self) -> LatLon:
        return self.max_lat, self.max_lng
