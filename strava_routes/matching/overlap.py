"""Grid-bucketed overlap counting between activity tracks."""

from __future__ import annotations

from collections import defaultdict
import logging
from types import MappingProxyType
from typing import DefaultDict, Dict, Mapping, Optional, Sequence, Set, Tuple

from ..config import COMMONALITY_DIGIT_ACCURACY
from ..errors import TelemetryLengthMismatchError
from ..geometry.models import LatLon
from ..geometry.primitives import path_length, reduce_accuracy
from ..models import ActivityId, Telemetry

_LOG = logging.getLogger(__name__)

OverlapCount = Dict[ActivityId, Dict[ActivityId, int]]
_BucketKey = Tuple[str, int, int]


class SpatialOverlapIndex:
    """Accumulate shared-point counts between activities of the same type.

    Every point is reduced onto an integer grid and the activity registered in
    that grid cell. When an activity lands in a cell already holding other
    activities, the pairwise counters for those pairs grow by one in both
    directions, which keeps counting linear in the number of points.
    """

    def __init__(self, *, digit_accuracy: float = COMMONALITY_DIGIT_ACCURACY) -> None:
        self._digit_accuracy = digit_accuracy
        self._buckets: Dict[_BucketKey, Set[ActivityId]] = {}
        self._overlap: DefaultDict[ActivityId, DefaultDict[ActivityId, int]] = (
            defaultdict(lambda: defaultdict(int))
        )
        self._point_counts: Dict[ActivityId, int] = {}
        self._lengths: Dict[ActivityId, float] = {}
        self._types: Dict[ActivityId, str] = {}
        self.points_total = 0

    @property
    def overlap(self) -> OverlapCount:
        return {src: dict(dests) for src, dests in self._overlap.items()}

    @property
    def point_counts(self) -> Dict[ActivityId, int]:
        return dict(self._point_counts)

    @property
    def lengths(self) -> Dict[ActivityId, float]:
        return dict(self._lengths)

    @property
    def activity_ids(self) -> list[ActivityId]:
        """Ingested activities in ingestion order."""

        return list(self._point_counts)

    def activity_type(self, activity_id: ActivityId) -> Optional[str]:
        return self._types.get(activity_id)

    def overlap_with(self, activity_id: ActivityId) -> Mapping[ActivityId, int]:
        """Read-only view of the shared-point counts from ``activity_id``."""

        row = self._overlap.get(activity_id)
        return MappingProxyType(row if row is not None else {})

    def point_count(self, activity_id: ActivityId) -> int:
        return self._point_counts.get(activity_id, 0)

    def length(self, activity_id: ActivityId) -> float:
        return self._lengths.get(activity_id, 0.0)

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._point_counts

    def __len__(self) -> int:
        return len(self._point_counts)

    def ingest(
        self,
        activity_id: ActivityId,
        activity_type: str,
        points: Sequence[LatLon],
        distances: Optional[Sequence[float]] = None,
    ) -> bool:
        """Register an activity's points.

        Returns ``False`` without touching the index when ``points`` is
        empty. Re-ingesting an activity is a no-op that returns ``True``.

        Raises:
            TelemetryLengthMismatchError: If ``distances`` is non-empty and
                does not have one sample per point.
        """

        if not points:
            _LOG.debug("Activity %s has no GPS points; skipping", activity_id)
            return False
        if distances and len(distances) != len(points):
            raise TelemetryLengthMismatchError(
                f"Activity {activity_id} has {len(points)} points but "
                f"{len(distances)} distance samples"
            )
        if activity_id in self._point_counts:
            _LOG.debug("Activity %s already ingested", activity_id)
            return True

        self._point_counts[activity_id] = len(points)
        self._types[activity_id] = activity_type
        if distances:
            self._lengths[activity_id] = float(distances[-1])
        else:
            # No distance stream: measure the track itself.
            self._lengths[activity_id] = path_length(points)

        for lat, lng in points:
            self.points_total += 1
            key = (
                activity_type,
                reduce_accuracy(lat, self._digit_accuracy),
                reduce_accuracy(lng, self._digit_accuracy),
            )
            bucket = self._buckets.setdefault(key, set())
            bucket.add(activity_id)
            for other_id in bucket:
                if other_id == activity_id:
                    continue
                self._overlap[activity_id][other_id] += 1
                self._overlap[other_id][activity_id] += 1
        return True

    def ingest_telemetry(self, telemetry: Telemetry) -> bool:
        return self.ingest(
            telemetry.activity_id,
            telemetry.activity_type,
            telemetry.latlng,
            telemetry.distance,
        )


__all__ = ["OverlapCount", "SpatialOverlapIndex"]
