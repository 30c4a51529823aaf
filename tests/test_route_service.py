"""Tests for the route service: rewrite, update, processing and removal."""

from __future__ import annotations

from typing import Callable, Dict, List

import pytest

from strava_routes.errors import RouteNotFoundError
from strava_routes.geometry import encode_polyline
from strava_routes.models import (
    ActivitySummary,
    Gradient,
    GradientType,
    RouteGroup,
    SegmentEffortRef,
    Telemetry,
)
from strava_routes.services import RouteService, RouteServiceConfig

from conftest import cell_points


def _service(telemetries: List[Telemetry], **kwargs) -> RouteService:
    by_id = {telemetry.activity_id: telemetry for telemetry in telemetries}
    return RouteService(RouteServiceConfig(telemetry_loader=by_id.get, **kwargs))


def test_rewrite_groups_matching_activities(
    track_sharing: Callable[..., Telemetry],
) -> None:
    telemetries = [track_sharing(1, 100), track_sharing(2, 100), track_sharing(3, 10)]
    routes = _service(telemetries).rewrite_routes(telemetries, athlete_id=42)

    assert [route.route_id for route in routes] == [1, 2]
    assert [route.activities for route in routes] == [{1, 2}, {3}]
    assert all(route.athlete_id == 42 for route in routes)
    assert not any(route.is_processed for route in routes)


def test_rewrite_respects_activity_cap(
    track_sharing: Callable[..., Telemetry],
) -> None:
    telemetries = [
        track_sharing(3, 100, length_m=12_000.0),
        track_sharing(1, 100),
        track_sharing(2, 100),
    ]
    routes = _service(telemetries, max_activities=2).rewrite_routes(telemetries)

    # Shortest activities are loaded first.
    assert {act for route in routes for act in route.activities} == {1, 2}


def test_update_folds_new_activities_into_existing_route(
    track_sharing: Callable[..., Telemetry],
) -> None:
    telemetries = [track_sharing(1, 100), track_sharing(2, 100), track_sharing(3, 10)]
    service = _service(telemetries)
    existing = [RouteGroup(route_id=1, activities={1}, master_activity_id=1)]

    result = service.update_routes(existing, [1, 2, 3, 4], athlete_id=9)

    assert existing[0].activities == {1, 2}
    assert result.updated_routes == [existing[0]]
    assert [route.activities for route in result.created_routes] == [{3}]
    assert result.created_routes[0].route_id > 1
    assert result.created_routes[0].athlete_id == 9
    assert result.skipped_activities == [4]
    assert result.allocated_activities == 2


def test_one_route_absorbs_every_cluster_it_matches(
    route_telemetry: Callable[..., Telemetry],
) -> None:
    # 2 and 3 share only 75% with each other but lie wholly on route 1.
    telemetries = [
        route_telemetry(1, cell_points(range(100)), length_m=10_000.0),
        route_telemetry(2, cell_points(range(80)), length_m=10_000.0),
        route_telemetry(3, cell_points(range(20, 100)), length_m=10_000.0),
    ]
    service = _service(telemetries)
    existing = [RouteGroup(route_id=1, activities={1}, master_activity_id=1)]

    result = service.update_routes(existing, [1, 2, 3])

    assert existing[0].activities == {1, 2, 3}
    assert result.updated_routes == [existing[0]]
    assert result.created_routes == []
    assert result.allocated_activities == 2


def test_update_numbers_new_routes_after_highest_existing_id(
    track_sharing: Callable[..., Telemetry],
) -> None:
    telemetries = [track_sharing(1, 100), track_sharing(2, 10), track_sharing(3, 20)]
    service = _service(telemetries)
    existing = [
        RouteGroup(route_id=4, activities={1}, master_activity_id=1),
        RouteGroup(route_id=7, activities={5}, master_activity_id=5),
    ]

    result = service.update_routes(existing, [2, 3])

    assert result.updated_routes == []
    assert [route.route_id for route in result.created_routes] == [8, 9]
    assert [route.activities for route in result.created_routes] == [{2}, {3}]


def test_update_without_new_activities_is_empty(
    track_sharing: Callable[..., Telemetry],
) -> None:
    service = _service([track_sharing(1, 100)])
    existing = [RouteGroup(route_id=1, activities={1}, master_activity_id=1)]
    result = service.update_routes(existing, [1])
    assert result.updated_routes == []
    assert result.created_routes == []
    assert result.allocated_activities == 0


def test_telemetry_loader_results_are_cached(
    track_sharing: Callable[..., Telemetry],
) -> None:
    calls: Dict[int, int] = {}
    telemetry = track_sharing(1, 100)

    def loader(activity_id: int):
        calls[activity_id] = calls.get(activity_id, 0) + 1
        return telemetry if activity_id == 1 else None

    service = RouteService(RouteServiceConfig(telemetry_loader=loader))
    assert service.load_telemetry(1) is telemetry
    assert service.load_telemetry(1) is telemetry
    assert service.load_telemetry(2) is None
    assert calls == {1: 1, 2: 1}


def test_process_route_from_telemetry_only(scenario_c_telemetry: Telemetry) -> None:
    service = _service([scenario_c_telemetry])
    route = RouteGroup(route_id=1, activities={7}, master_activity_id=7)

    processed = service.process_routes([route])

    assert processed == [route]
    assert route.is_processed
    assert route.route_type == "RouteRide"
    assert route.distance_m == pytest.approx(3400.0)
    assert route.polyline
    assert route.bounding_box is not None
    assert route.bounding_box.min_lat == pytest.approx(44.4005, abs=1e-5)
    assert route.center is not None
    assert route.distance_from_reference_km is not None
    assert 0.0 < route.distance_from_reference_km < 10.0
    assert len(route.gradients) == 1
    climb = route.gradients[0]
    assert climb.gradient_type is GradientType.CLIMB
    assert (climb.start_index, climb.end_index) == (1, 340)
    assert route.climb_per_km == pytest.approx(climb.elevation_gain / 3.4)

    assert service.process_routes([route]) == []
    assert service.process_routes([route], force=True) == [route]


def test_process_route_remaps_into_summary_polyline(
    scenario_c_telemetry: Telemetry,
) -> None:
    service = _service([scenario_c_telemetry])
    route = RouteGroup(route_id=3, activities={7}, master_activity_id=7)
    summary = ActivitySummary(
        activity_id=7,
        activity_type="Run",
        distance_m=3400.0,
        total_elevation_gain=240.0,
        polyline=encode_polyline(scenario_c_telemetry.latlng[::10]),
        location_city="Brasov",
        location_country="Romania",
        segment_efforts=[
            SegmentEffortRef(start_index=0, city="Sinaia", country="Romania"),
            SegmentEffortRef(start_index=200, city="Busteni", country="Romania"),
        ],
    )

    service.process_routes([route], {7: summary})

    assert route.route_type == "RouteRun"
    assert route.location_city == "Brasov"
    climb = route.gradients[0]
    assert (climb.start_index, climb.end_index) == (1, 34)
    assert climb.location_city == "Sinaia"
    assert climb.location_country == "Romania"


def test_gradient_location_ignores_effort_order() -> None:
    route = RouteGroup(
        route_id=1,
        activities={7},
        master_activity_id=7,
        location_city="Brasov",
        location_country="Romania",
    )
    summary = ActivitySummary(
        activity_id=7,
        activity_type="Ride",
        segment_efforts=[
            SegmentEffortRef(start_index=200, city="Busteni", country="Romania"),
            SegmentEffortRef(start_index=0, city="Sinaia", country="Romania"),
        ],
    )
    early = Gradient(GradientType.CLIMB, 1, 150, 1500.0, 6.0, 9.0, 90.0)
    late = Gradient(GradientType.CLIMB, 250, 300, 500.0, 6.0, 9.0, 30.0)

    RouteService._assign_location(early, route, summary)
    RouteService._assign_location(late, route, summary)

    assert early.location_city == "Sinaia"
    assert late.location_city == "Busteni"


def test_process_skips_routes_without_master_telemetry() -> None:
    service = _service([])
    route = RouteGroup(route_id=1, activities={5}, master_activity_id=5)
    assert service.process_routes([route]) == []
    assert not route.is_processed


def test_remove_activity_reassigns_master_and_clears_derived(
    scenario_c_telemetry: Telemetry,
) -> None:
    service = _service([scenario_c_telemetry])
    route = RouteGroup(route_id=1, activities={7, 9, 8}, master_activity_id=7)
    service.process_routes([route])
    routes = [route]

    updated = service.remove_activity(routes, 7)

    assert updated is route
    assert route.activities == {8, 9}
    assert route.master_activity_id == 8
    assert not route.is_processed
    assert route.gradients == []
    assert route.polyline == ""


def test_remove_non_master_keeps_derived_fields(
    scenario_c_telemetry: Telemetry,
) -> None:
    service = _service([scenario_c_telemetry])
    route = RouteGroup(route_id=1, activities={7, 8}, master_activity_id=7)
    service.process_routes([route])

    service.remove_activity([route], 8)

    assert route.activities == {7}
    assert route.is_processed


def test_remove_last_activity_deletes_route() -> None:
    service = RouteService()
    routes = [
        RouteGroup(route_id=1, activities={1}, master_activity_id=1),
        RouteGroup(route_id=2, activities={2}, master_activity_id=2),
    ]
    assert service.remove_activity(routes, 1) is None
    assert [route.route_id for route in routes] == [2]


def test_remove_unknown_activity_raises() -> None:
    service = RouteService()
    with pytest.raises(RouteNotFoundError):
        service.remove_activity([], 1)
