"""Split an activity's elevation profile into sustained climbs and descents."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .config import (
    CLIMB_GRADIENT_THRESHOLD,
    DESCENT_GRADIENT_THRESHOLD,
    GRADIENT_FLUCTUATION_ALLOWANCE_M,
    GRADIENT_MIN_LENGTH_CLIMB_M,
    GRADIENT_MIN_LENGTH_DESCENT_M,
    PROFILE_DISTANCE_DELTA_M,
    PROFILE_GRADE_DELTA,
)
from .errors import TelemetryFormatError, TelemetryLengthMismatchError
from .models import Gradient, GradientType, Telemetry

_LOG = logging.getLogger(__name__)

_ProfileSample = Tuple[int, float, float]  # (index, altitude, distance)


@dataclass(slots=True)
class _OpenSegment:
    """Running state of the segment currently being scanned.

    Points past ``end`` are accumulated as pending and only committed once
    the segment is extended over them, so a segment that closes never
    carries the trailing fluctuation into its statistics.
    """

    gradient_type: GradientType
    start: int
    end: int
    grade_distance: float
    extreme_grade: float
    elevation: float = 0.0
    pending_grade_distance: float = 0.0
    pending_extreme: Optional[float] = None
    pending_elevation: float = 0.0
    samples: List[_ProfileSample] = field(default_factory=list)
    last_sample_distance: float = 0.0
    grade_change: float = 0.0

    @property
    def is_climb(self) -> bool:
        return self.gradient_type is GradientType.CLIMB

    def add_point(
        self,
        index: int,
        grade: float,
        previous_grade: float,
        altitude: float,
        altitude_delta: float,
        distance: float,
        distance_delta: float,
        *,
        grade_delta: float,
        distance_sample_m: float,
    ) -> None:
        self.pending_grade_distance += grade * distance_delta
        if self.pending_extreme is None:
            self.pending_extreme = grade
        elif self.is_climb:
            self.pending_extreme = max(self.pending_extreme, grade)
        else:
            self.pending_extreme = min(self.pending_extreme, grade)
        if self.is_climb and altitude_delta > 0:
            self.pending_elevation += altitude_delta
        elif not self.is_climb and altitude_delta < 0:
            self.pending_elevation += altitude_delta

        self.grade_change += abs(grade - previous_grade)
        if (
            self.grade_change > grade_delta
            or distance - self.last_sample_distance > distance_sample_m
        ):
            self.samples.append((index, altitude, distance))
            self.last_sample_distance = distance
            self.grade_change = 0.0

    def extend_to(self, index: int) -> None:
        self.end = index
        self.grade_distance += self.pending_grade_distance
        self.elevation += self.pending_elevation
        if self.pending_extreme is not None:
            if self.is_climb:
                self.extreme_grade = max(self.extreme_grade, self.pending_extreme)
            else:
                self.extreme_grade = min(self.extreme_grade, self.pending_extreme)
        self.pending_grade_distance = 0.0
        self.pending_elevation = 0.0
        self.pending_extreme = None


class GradientFinder:
    """Single forward scan over grade/altitude/distance streams.

    Each point is classified as climbing, descending or neutral. A segment
    opens on the first climbing or descending point and survives short
    opposite or flat stretches until the distance since its last extension
    exceeds the fluctuation allowance. Segments shorter than the minimum for
    their type are dropped.
    """

    def __init__(
        self,
        *,
        climb_threshold: float = CLIMB_GRADIENT_THRESHOLD,
        descent_threshold: float = DESCENT_GRADIENT_THRESHOLD,
        fluctuation_allowance_m: float = GRADIENT_FLUCTUATION_ALLOWANCE_M,
        min_length_climb_m: float = GRADIENT_MIN_LENGTH_CLIMB_M,
        min_length_descent_m: float = GRADIENT_MIN_LENGTH_DESCENT_M,
        profile_grade_delta: float = PROFILE_GRADE_DELTA,
        profile_distance_delta_m: float = PROFILE_DISTANCE_DELTA_M,
    ) -> None:
        self.climb_threshold = climb_threshold
        self.descent_threshold = descent_threshold
        self.fluctuation_allowance_m = fluctuation_allowance_m
        self.min_length_climb_m = min_length_climb_m
        self.min_length_descent_m = min_length_descent_m
        self.profile_grade_delta = profile_grade_delta
        self.profile_distance_delta_m = profile_distance_delta_m

    def classify(self, grade: float) -> Optional[GradientType]:
        if grade >= self.climb_threshold:
            return GradientType.CLIMB
        if grade <= self.descent_threshold:
            return GradientType.DESCENT
        return None

    def _flipped(self, grade: float, gradient_type: GradientType) -> bool:
        if gradient_type is GradientType.CLIMB:
            return grade < self.climb_threshold
        return grade > self.descent_threshold

    def min_length_for(self, gradient_type: GradientType) -> float:
        if gradient_type is GradientType.CLIMB:
            return self.min_length_climb_m
        return self.min_length_descent_m

    def find_gradients(self, telemetry: Telemetry) -> List[Gradient]:
        """Return the climbs and descents found in ``telemetry``.

        Indices refer to the telemetry's own sample frame.

        Raises:
            TelemetryLengthMismatchError: If the streams have different lengths.
            TelemetryFormatError: If a sample is NaN or infinite.
        """

        telemetry.validate()
        if not (telemetry.distance and telemetry.altitude and telemetry.grade_smooth):
            _LOG.debug(
                "Activity %s lacks distance/altitude/grade streams; no gradients",
                telemetry.activity_id,
            )
            return []
        gradients = self.scan(
            telemetry.distance, telemetry.altitude, telemetry.grade_smooth
        )
        _LOG.debug(
            "Activity %s: %d gradients found", telemetry.activity_id, len(gradients)
        )
        return gradients

    def scan(
        self,
        distance: Sequence[float],
        altitude: Sequence[float],
        grade: Sequence[float],
    ) -> List[Gradient]:
        distances = np.asarray(distance, dtype=float)
        altitudes = np.asarray(altitude, dtype=float)
        grades = np.asarray(grade, dtype=float)
        if not (distances.shape == altitudes.shape == grades.shape):
            raise TelemetryLengthMismatchError(
                "distance/altitude/grade streams differ in length: "
                f"{distances.size}/{altitudes.size}/{grades.size}"
            )
        finite = np.isfinite(distances) & np.isfinite(altitudes) & np.isfinite(grades)
        if not finite.all():
            first_bad = int(np.flatnonzero(~finite)[0])
            raise TelemetryFormatError(
                f"Non-finite distance/altitude/grade sample at index {first_bad}"
            )
        # Element 0 of each delta stream is unused.
        dist_delta = np.diff(distances, prepend=distances[:1]).tolist()
        alt_delta = np.diff(altitudes, prepend=altitudes[:1]).tolist()
        dist = distances.tolist()
        alt = altitudes.tolist()
        grd = grades.tolist()

        gradients: List[Gradient] = []
        segment: Optional[_OpenSegment] = None
        for index in range(1, len(dist)):
            current = grd[index]
            if segment is not None:
                segment.add_point(
                    index,
                    current,
                    grd[index - 1],
                    alt[index],
                    alt_delta[index],
                    dist[index],
                    dist_delta[index],
                    grade_delta=self.profile_grade_delta,
                    distance_sample_m=self.profile_distance_delta_m,
                )
                if not self._flipped(current, segment.gradient_type):
                    elevation_change = alt[index] - alt[segment.end]
                    if (segment.is_climb and elevation_change >= 0) or (
                        not segment.is_climb and elevation_change <= 0
                    ):
                        segment.extend_to(index)
                    continue
                if dist[index] - dist[segment.end] <= self.fluctuation_allowance_m:
                    continue
                self._close(segment, dist, alt, gradients)
                segment = None

            gradient_type = self.classify(current)
            if gradient_type is not None:
                segment = self._open(gradient_type, index, current, alt, dist)

        if segment is not None:
            self._close(segment, dist, alt, gradients)
        return gradients

    def _open(
        self,
        gradient_type: GradientType,
        index: int,
        grade: float,
        alt: List[float],
        dist: List[float],
    ) -> _OpenSegment:
        return _OpenSegment(
            gradient_type=gradient_type,
            start=index,
            end=index,
            grade_distance=0.0,
            extreme_grade=grade,
            samples=[(index, alt[index], dist[index])],
            last_sample_distance=dist[index],
        )

    def _close(
        self,
        segment: _OpenSegment,
        dist: List[float],
        alt: List[float],
        gradients: List[Gradient],
    ) -> None:
        if segment.end <= segment.start:
            return
        length = dist[segment.end] - dist[segment.start]
        if length <= 0.0 or length < self.min_length_for(segment.gradient_type):
            return
        start_distance = dist[segment.start]
        samples = [sample for sample in segment.samples if sample[0] <= segment.end]
        if samples[-1][0] != segment.end:
            samples.append((segment.end, alt[segment.end], dist[segment.end]))
        gradients.append(
            Gradient(
                gradient_type=segment.gradient_type,
                start_index=segment.start,
                end_index=segment.end,
                length_m=length,
                avg_gradient=segment.grade_distance / length,
                max_gradient=segment.extreme_grade,
                elevation_gain=segment.elevation,
                altitude=[sample[1] for sample in samples],
                distance=[sample[2] - start_distance for sample in samples],
            )
        )
        _LOG.debug(
            "%s between %.1fkm and %.1fkm, length %.1fkm, avg %.2f%%",
            segment.gradient_type.value,
            dist[segment.start] / 1000.0,
            dist[segment.end] / 1000.0,
            length / 1000.0,
            segment.grade_distance / length,
        )


def find_gradients(telemetry: Telemetry) -> List[Gradient]:
    """Run a :class:`GradientFinder` with the configured defaults."""

    return GradientFinder().find_gradients(telemetry)


__all__ = ["GradientFinder", "find_gradients"]
