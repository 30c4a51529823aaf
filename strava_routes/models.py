"""Dataclasses describing telemetry inputs and route/gradient outputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .errors import TelemetryLengthMismatchError
from .geometry.models import BoundingBox, LatLon

ActivityId = int


@dataclass(slots=True)
class Telemetry:
    """Parallel per-activity streams sharing a single index space.

    Any stream may be empty when the provider did not record it; non-empty
    streams must all have the same length.
    """

    activity_id: ActivityId
    activity_type: str
    latlng: List[LatLon] = field(default_factory=list)
    distance: List[float] = field(default_factory=list)
    altitude: List[float] = field(default_factory=list)
    grade_smooth: List[float] = field(default_factory=list)
    velocity_smooth: List[float] = field(default_factory=list)
    time: List[float] = field(default_factory=list)

    @property
    def point_count(self) -> int:
        return len(self.latlng)

    @property
    def length_m(self) -> Optional[float]:
        """Physical length taken from the last cumulative distance sample."""

        if not self.distance:
            return None
        return float(self.distance[-1])

    def stream_lengths(self) -> Dict[str, int]:
        return {
            "latlng": len(self.latlng),
            "distance": len(self.distance),
            "altitude": len(self.altitude),
            "grade_smooth": len(self.grade_smooth),
            "velocity_smooth": len(self.velocity_smooth),
            "time": len(self.time),
        }

    def validate(self) -> "Telemetry":
        """Raise when two non-empty streams disagree on their length."""

        lengths = {name: size for name, size in self.stream_lengths().items() if size}
        if len(set(lengths.values())) > 1:
            raise TelemetryLengthMismatchError(
                f"Telemetry streams for activity {self.activity_id} differ in length: "
                f"{lengths}"
            )
        return self


@dataclass(slots=True, frozen=True)
class MatchResult:
    """Directed overlap score between two activities."""

    percentage: int
    source_id: ActivityId
    dest_id: ActivityId


class GradientType(str, Enum):
    CLIMB = "climb"
    DESCENT = "descent"


@dataclass(slots=True)
class Gradient:
    """A sustained climb or descent within one coordinate frame."""

    gradient_type: GradientType
    start_index: int
    end_index: int
    length_m: float
    avg_gradient: float
    max_gradient: float
    elevation_gain: float
    # Downsampled profile; distances are relative to the segment start.
    altitude: List[float] = field(default_factory=list)
    distance: List[float] = field(default_factory=list)
    location_city: Optional[str] = None
    location_country: Optional[str] = None


@dataclass(slots=True)
class RouteGroup:
    """A set of activities believed to trace the same physical path."""

    route_id: int
    activities: Set[ActivityId]
    master_activity_id: ActivityId
    athlete_id: Optional[int] = None
    activity_type: Optional[str] = None
    # Empty until the route processor has populated the derived fields.
    route_type: str = ""
    polyline: str = ""
    distance_m: Optional[float] = None
    total_elevation_gain: Optional[float] = None
    average_speed: Optional[float] = None
    description: Optional[str] = None
    bounding_box: Optional[BoundingBox] = None
    center: Optional[LatLon] = None
    distance_from_reference_km: Optional[float] = None
    location_city: Optional[str] = None
    location_country: Optional[str] = None
    climb_per_km: Optional[float] = None
    gradients: List[Gradient] = field(default_factory=list)

    @property
    def is_processed(self) -> bool:
        return bool(self.route_type)


@dataclass(slots=True)
class SegmentEffortRef:
    """Where a Strava segment effort starts within its activity telemetry."""

    start_index: int
    city: Optional[str] = None
    country: Optional[str] = None


@dataclass(slots=True)
class ActivitySummary:
    """Activity-level metadata consumed by the route processor."""

    activity_id: ActivityId
    activity_type: str
    distance_m: Optional[float] = None
    total_elevation_gain: Optional[float] = None
    average_speed: Optional[float] = None
    polyline: str = ""
    description: Optional[str] = None
    location_city: Optional[str] = None
    location_country: Optional[str] = None
    segment_efforts: List[SegmentEffortRef] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
