"""Global pytest fixtures & helpers.

Adds project root to path and provides synthetic track and elevation
profile factories shared by the matching, gradient and service tests.
"""
from __future__ import annotations

import os
import sys
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from strava_routes.models import Telemetry

# Cell centres of the 3.5-digit matching grid (0.001 degree cells).
BASE_LAT = 44.4005
BASE_LNG = 26.1005
CELL_DEG = 0.001
METRES_PER_DEG_LAT = 111_195.0


# --- Factory helpers -------------------------------------------------
def cell_points(cells: Iterable[int], *, lng_offset: float = 0.0) -> List[Tuple[float, float]]:
    return [(BASE_LAT + cell * CELL_DEG, BASE_LNG + lng_offset) for cell in cells]


def make_route_telemetry(
    activity_id: int,
    points: Sequence[Tuple[float, float]],
    *,
    activity_type: str = "Ride",
    length_m: Optional[float] = None,
) -> Telemetry:
    """Telemetry whose distance stream spans ``length_m`` evenly."""

    total = length_m if length_m is not None else 111.0 * len(points)
    step = total / max(len(points) - 1, 1)
    return Telemetry(
        activity_id=activity_id,
        activity_type=activity_type,
        latlng=list(points),
        distance=[idx * step for idx in range(len(points))],
    )


def shared_track(
    activity_id: int, shared: int, *, total: int = 100, length_m: float = 10_000.0
) -> Telemetry:
    """Track sharing ``shared`` cells with ``cell_points(range(total))``.

    The remaining points sit on a private meridian keyed by ``activity_id``.
    """

    points = cell_points(range(shared)) + cell_points(
        range(total - shared), lng_offset=0.05 * activity_id
    )
    return make_route_telemetry(activity_id, points, length_m=length_m)


def make_profile_telemetry(
    activity_id: int,
    sections: Sequence[Tuple[float, float]],
    *,
    spacing_m: float = 10.0,
    activity_type: str = "Ride",
) -> Telemetry:
    """Straight northbound track built from (length_m, grade_pct) sections.

    Sample 0 carries the first section's grade; each section then adds
    ``length_m / spacing_m`` samples.
    """

    grades = [sections[0][1]]
    for length_m, grade in sections:
        grades.extend([grade] * int(round(length_m / spacing_m)))
    altitude = [100.0]
    for grade in grades[1:]:
        altitude.append(altitude[-1] + grade * spacing_m / 100.0)
    count = len(grades)
    return Telemetry(
        activity_id=activity_id,
        activity_type=activity_type,
        latlng=[
            (BASE_LAT + idx * spacing_m / METRES_PER_DEG_LAT, BASE_LNG)
            for idx in range(count)
        ],
        distance=[idx * spacing_m for idx in range(count)],
        altitude=altitude,
        grade_smooth=list(grades),
    )


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def route_telemetry() -> Callable[..., Telemetry]:
    return make_route_telemetry


@pytest.fixture
def track_sharing() -> Callable[..., Telemetry]:
    return shared_track


@pytest.fixture
def profile_telemetry() -> Callable[..., Telemetry]:
    return make_profile_telemetry


@pytest.fixture
def scenario_c_telemetry() -> Telemetry:
    """1500 m at +8%, a 400 m dip at -1%, then 1500 m at +8%."""

    return make_profile_telemetry(7, [(1500.0, 8.0), (400.0, -1.0), (1500.0, 8.0)])
