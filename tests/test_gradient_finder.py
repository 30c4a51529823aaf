"""Tests for climb and descent segmentation."""

from __future__ import annotations

from typing import Callable

import pytest

from strava_routes.errors import TelemetryFormatError, TelemetryLengthMismatchError
from strava_routes.gradient_finder import GradientFinder, find_gradients
from strava_routes.models import GradientType, Telemetry


def test_short_dip_keeps_one_climb(scenario_c_telemetry: Telemetry) -> None:
    gradients = find_gradients(scenario_c_telemetry)

    assert len(gradients) == 1
    climb = gradients[0]
    assert climb.gradient_type is GradientType.CLIMB
    assert climb.start_index == 1
    assert climb.end_index == 340
    assert climb.length_m == pytest.approx(3390.0)
    assert climb.avg_gradient == pytest.approx(23520.0 / 3390.0)
    assert climb.max_gradient == pytest.approx(8.0)
    assert climb.elevation_gain == pytest.approx(239.2)


def test_climb_profile_is_relative_to_segment_start(
    scenario_c_telemetry: Telemetry,
) -> None:
    climb = find_gradients(scenario_c_telemetry)[0]

    assert len(climb.altitude) == len(climb.distance)
    assert climb.distance[0] == 0.0
    assert climb.distance[-1] == pytest.approx(climb.length_m)
    assert climb.distance == sorted(climb.distance)
    assert len(climb.distance) < 341
    steps = [b - a for a, b in zip(climb.distance, climb.distance[1:])]
    assert max(steps) <= 30.0 + 1e-9


def test_short_descent_is_dropped(profile_telemetry: Callable[..., Telemetry]) -> None:
    assert find_gradients(profile_telemetry(1, [(800.0, -5.0)])) == []


def test_long_descent_reports_negative_elevation(
    profile_telemetry: Callable[..., Telemetry],
) -> None:
    gradients = find_gradients(profile_telemetry(1, [(2500.0, -5.0)]))

    assert len(gradients) == 1
    descent = gradients[0]
    assert descent.gradient_type is GradientType.DESCENT
    assert descent.length_m == pytest.approx(2490.0)
    assert descent.max_gradient == pytest.approx(-5.0)
    assert descent.elevation_gain == pytest.approx(-124.5)


def test_short_climb_is_dropped(profile_telemetry: Callable[..., Telemetry]) -> None:
    assert find_gradients(profile_telemetry(1, [(500.0, 8.0)])) == []


def test_long_flat_splits_climbs(profile_telemetry: Callable[..., Telemetry]) -> None:
    telemetry = profile_telemetry(1, [(1500.0, 8.0), (700.0, 0.0), (1500.0, 8.0)])
    gradients = find_gradients(telemetry)

    assert [g.gradient_type for g in gradients] == [GradientType.CLIMB] * 2
    assert gradients[0].end_index == 150
    assert gradients[1].start_index == 221
    assert gradients[1].end_index == 370


def test_climb_then_descent(profile_telemetry: Callable[..., Telemetry]) -> None:
    telemetry = profile_telemetry(1, [(1200.0, 7.0), (3000.0, -4.0)])
    gradients = find_gradients(telemetry)

    assert [g.gradient_type for g in gradients] == [
        GradientType.CLIMB,
        GradientType.DESCENT,
    ]
    assert gradients[0].end_index < gradients[1].start_index


def test_neutral_profile_has_no_gradients(
    profile_telemetry: Callable[..., Telemetry],
) -> None:
    assert find_gradients(profile_telemetry(1, [(3000.0, 2.0)])) == []


def test_custom_thresholds(profile_telemetry: Callable[..., Telemetry]) -> None:
    finder = GradientFinder(climb_threshold=2.0, min_length_climb_m=100.0)
    gradients = finder.find_gradients(profile_telemetry(1, [(300.0, 3.0)]))
    assert len(gradients) == 1
    assert finder.classify(3.0) is GradientType.CLIMB
    assert finder.classify(0.0) is None


def test_missing_streams_yield_nothing() -> None:
    telemetry = Telemetry(activity_id=1, activity_type="Ride", distance=[0.0, 10.0])
    assert find_gradients(telemetry) == []


def test_mismatched_streams_raise() -> None:
    telemetry = Telemetry(
        activity_id=1,
        activity_type="Ride",
        distance=[0.0, 10.0, 20.0],
        altitude=[1.0, 2.0],
        grade_smooth=[8.0, 8.0, 8.0],
    )
    with pytest.raises(TelemetryLengthMismatchError):
        find_gradients(telemetry)
    with pytest.raises(TelemetryLengthMismatchError):
        GradientFinder().scan([0.0, 10.0], [1.0], [8.0, 8.0])


def test_non_finite_samples_raise() -> None:
    finder = GradientFinder()
    with pytest.raises(TelemetryFormatError, match="index 2"):
        finder.scan([0.0, 10.0, 20.0], [1.0, 2.0, float("nan")], [8.0, 8.0, 8.0])
    with pytest.raises(TelemetryFormatError, match="index 0"):
        finder.scan([float("inf"), 10.0], [1.0, 2.0], [8.0, 8.0])
