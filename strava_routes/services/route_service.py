"""Route service.

Sequences the pure engine pieces the way a sync run needs them: full
re-clustering ("rewrite"), folding newly synced activities into existing
routes ("update"), deriving route geometry and gradients from each route's
master activity, and removing deleted activities. Persistence stays with the
caller; telemetry is pulled through an injected loader.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Callable, Iterable, List, Mapping, Optional, Sequence

from cachetools import LRUCache

from ..config import (
    COMMONALITY_DIGIT_ACCURACY,
    MATCH_THRESHOLD,
    ROUTE_MATCHING_MAX_ACTIVITIES,
    ROUTE_REFERENCE_LATLNG,
    TELEMETRY_CACHE_SIZE,
)
from ..errors import RouteNotFoundError
from ..geometry import (
    LatLon,
    bounding_box,
    bounding_box_center,
    create_polyline_mapping_table,
    decode_polyline,
    encode_polyline,
    great_circle_distance,
    path_length,
    remap_index,
)
from ..gradient_finder import GradientFinder
from ..matching import RouteCommonality
from ..models import (
    ActivityId,
    ActivitySummary,
    Gradient,
    GradientType,
    RouteGroup,
    Telemetry,
)

TelemetryLoader = Callable[[ActivityId], Optional[Telemetry]]


def _no_telemetry(activity_id: ActivityId) -> Optional[Telemetry]:
    return None


@dataclass(slots=True)
class RouteServiceConfig:
    telemetry_loader: TelemetryLoader = _no_telemetry
    threshold: int = MATCH_THRESHOLD
    digit_accuracy: float = COMMONALITY_DIGIT_ACCURACY
    max_activities: int = ROUTE_MATCHING_MAX_ACTIVITIES
    cache_size: int = TELEMETRY_CACHE_SIZE
    reference_latlng: LatLon = ROUTE_REFERENCE_LATLNG
    gradient_finder: GradientFinder = field(default_factory=GradientFinder)
    logger: logging.Logger | None = None


@dataclass(slots=True)
class RouteUpdateResult:
    """Routes touched by an update run."""

    updated_routes: List[RouteGroup] = field(default_factory=list)
    created_routes: List[RouteGroup] = field(default_factory=list)
    skipped_activities: List[ActivityId] = field(default_factory=list)
    allocated_activities: int = 0


class RouteService:
    def __init__(self, config: RouteServiceConfig | None = None):
        self.config = config or RouteServiceConfig()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)
        self._telemetry_cache: LRUCache[ActivityId, Telemetry] = LRUCache(
            maxsize=max(1, self.config.cache_size)
        )

    def _new_commonality(self) -> RouteCommonality:
        return RouteCommonality(
            digit_accuracy=self.config.digit_accuracy,
            threshold=self.config.threshold,
        )

    def load_telemetry(self, activity_id: ActivityId) -> Optional[Telemetry]:
        cached = self._telemetry_cache.get(activity_id)
        if cached is not None:
            return cached
        telemetry = self.config.telemetry_loader(activity_id)
        if telemetry is not None:
            self._telemetry_cache[activity_id] = telemetry
        return telemetry

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------
    def rewrite_routes(
        self,
        telemetries: Iterable[Telemetry],
        *,
        athlete_id: int | None = None,
    ) -> List[RouteGroup]:
        """Cluster ``telemetries`` from scratch, shortest activities first."""

        ordered = sorted(telemetries, key=_telemetry_length)
        commonality = self._new_commonality()
        loaded = 0
        for telemetry in ordered:
            if self.config.max_activities > 0 and loaded >= self.config.max_activities:
                self._log.warning(
                    "Activity cap of %d reached; %d activities left unmatched",
                    self.config.max_activities,
                    len(ordered) - loaded,
                )
                break
            if commonality.load_telemetry(telemetry):
                loaded += 1
        routes = commonality.matched_routes()
        for route in routes:
            route.athlete_id = athlete_id
        self._log.info(
            "Rewrite produced %d routes from %d activities", len(routes), loaded
        )
        return routes

    def update_routes(
        self,
        existing_routes: Sequence[RouteGroup],
        activity_ids: Iterable[ActivityId],
        *,
        athlete_id: int | None = None,
    ) -> RouteUpdateResult:
        """Fold activities not yet in any route into ``existing_routes``.

        The new activities are clustered among themselves first. Each
        existing route's master is then tested against every cluster still
        unclaimed and absorbs all of those it matches; a cluster belongs to
        the first route that claims it. Clusters left over become new routes
        numbered after the highest existing route id. Existing routes are
        modified in place.
        """

        result = RouteUpdateResult()
        grouped = {act for route in existing_routes for act in route.activities}
        missing = [act for act in dict.fromkeys(activity_ids) if act not in grouped]
        if not missing:
            return result

        next_route_id = max((route.route_id for route in existing_routes), default=0) + 1
        commonality = self._new_commonality()
        commonality.set_first_route_index(next_route_id)
        for activity_id in missing:
            telemetry = self.load_telemetry(activity_id)
            if telemetry is None or not commonality.load_telemetry(telemetry):
                result.skipped_activities.append(activity_id)
        if result.skipped_activities:
            self._log.warning(
                "%d activities without usable telemetry were not matched",
                len(result.skipped_activities),
            )

        pending = commonality.matched_routes()
        self._log.info(
            "Loaded %d missing activities into %d candidate groups",
            len(missing) - len(result.skipped_activities),
            len(pending),
        )
        for route in existing_routes:
            if not pending:
                break
            master = self.load_telemetry(route.master_activity_id)
            if master is None or not commonality.load_telemetry(master):
                self._log.warning(
                    "Route %s master %s has no telemetry; cannot absorb new activities",
                    route.route_id,
                    route.master_activity_id,
                )
                continue
            absorbed = [
                candidate
                for candidate in pending
                if commonality.is_matched(route.master_activity_id, candidate.activities)
            ]
            if not absorbed:
                continue
            for candidate in absorbed:
                self._log.info(
                    "Merging %d activities into route %s (master %s)",
                    len(candidate.activities),
                    route.route_id,
                    route.master_activity_id,
                )
                route.activities.update(candidate.activities)
                result.allocated_activities += len(candidate.activities)
            claimed = {id(candidate) for candidate in absorbed}
            pending = [candidate for candidate in pending if id(candidate) not in claimed]
            result.updated_routes.append(route)

        for route in pending:
            route.athlete_id = athlete_id
            result.allocated_activities += len(route.activities)
        result.created_routes = pending
        self._log.info(
            "Update allocated %d activities (%d routes extended, %d created)",
            result.allocated_activities,
            len(result.updated_routes),
            len(result.created_routes),
        )
        return result

    def remove_activity(
        self, routes: List[RouteGroup], activity_id: ActivityId
    ) -> Optional[RouteGroup]:
        """Drop a deleted activity from its route.

        Returns the affected route, or ``None`` when the route lost its last
        member and was removed from ``routes``. When the master is removed
        the lowest remaining activity id takes over and the route's derived
        fields are cleared for reprocessing.

        Raises:
            RouteNotFoundError: If no route contains ``activity_id``.
        """

        for position, route in enumerate(routes):
            if activity_id not in route.activities:
                continue
            route.activities.discard(activity_id)
            if not route.activities:
                del routes[position]
                self._log.info("Route %s deleted with its last activity", route.route_id)
                return None
            if route.master_activity_id == activity_id:
                route.master_activity_id = min(route.activities)
                _reset_derived_fields(route)
                self._log.info(
                    "Route %s master replaced by %s",
                    route.route_id,
                    route.master_activity_id,
                )
            return route
        raise RouteNotFoundError(f"Activity {activity_id} is not part of any route")

    # ------------------------------------------------------------------
    # Route processing
    # ------------------------------------------------------------------
    def process_routes(
        self,
        routes: Iterable[RouteGroup],
        summaries: Mapping[ActivityId, ActivitySummary] | None = None,
        *,
        force: bool = False,
    ) -> List[RouteGroup]:
        """Populate derived fields of routes that have not been processed yet."""

        summaries = summaries or {}
        processed: List[RouteGroup] = []
        for route in routes:
            if route.is_processed and not force:
                continue
            telemetry = self.load_telemetry(route.master_activity_id)
            if telemetry is None:
                self._log.warning(
                    "Route %s: master %s telemetry unavailable; skipping",
                    route.route_id,
                    route.master_activity_id,
                )
                continue
            summary = summaries.get(route.master_activity_id)
            if summary is None:
                summary = ActivitySummary(
                    activity_id=telemetry.activity_id,
                    activity_type=telemetry.activity_type,
                    distance_m=_telemetry_length(telemetry),
                )
            processed.append(self.process_route(route, telemetry, summary))
        return processed

    def process_route(
        self,
        route: RouteGroup,
        master_telemetry: Telemetry,
        master_summary: ActivitySummary,
    ) -> RouteGroup:
        """Derive geometry and gradients for ``route`` from its master activity."""

        route.route_type = f"Route{master_summary.activity_type}"
        route.activity_type = master_summary.activity_type
        route.distance_m = master_summary.distance_m
        if route.distance_m is None:
            route.distance_m = _telemetry_length(master_telemetry)
        route.total_elevation_gain = master_summary.total_elevation_gain
        route.average_speed = master_summary.average_speed
        route.description = master_summary.description or ""
        route.location_city = master_summary.location_city
        route.location_country = master_summary.location_country
        route.polyline = master_summary.polyline or encode_polyline(
            master_telemetry.latlng
        )

        points = decode_polyline(route.polyline)
        if points:
            route.bounding_box = bounding_box(points)
            route.center = bounding_box_center(route.bounding_box)
            route.distance_from_reference_km = (
                great_circle_distance(route.center, self.config.reference_latlng)
                / 1000.0
            )

        gradients = self.config.gradient_finder.find_gradients(master_telemetry)
        if gradients and master_telemetry.latlng:
            table = create_polyline_mapping_table(
                route.polyline, master_telemetry.latlng
            )
            for gradient in gradients:
                self._assign_location(gradient, route, master_summary)
                gradient.start_index = remap_index(table, gradient.start_index)
                gradient.end_index = remap_index(table, gradient.end_index)
        route.gradients = gradients
        route.climb_per_km = _climb_per_km(gradients, route.distance_m)
        self._log.debug(
            "Route %s processed: %d gradients, master %s",
            route.route_id,
            len(gradients),
            route.master_activity_id,
        )
        return route

    @staticmethod
    def _assign_location(
        gradient: Gradient, route: RouteGroup, summary: ActivitySummary
    ) -> None:
        # Telemetry-frame indices; must run before remapping.
        gradient.location_city = route.location_city
        gradient.location_country = route.location_country
        for effort in sorted(summary.segment_efforts, key=lambda item: item.start_index):
            if effort.start_index > gradient.start_index:
                break
            gradient.location_city = effort.city
            gradient.location_country = effort.country


def _telemetry_length(telemetry: Telemetry) -> float:
    length = telemetry.length_m
    if length is not None:
        return length
    return path_length(telemetry.latlng)


def _climb_per_km(gradients: Sequence[Gradient], distance_m: float | None) -> float | None:
    if not distance_m or distance_m <= 0:
        return None
    climbed = sum(
        gradient.elevation_gain
        for gradient in gradients
        if gradient.gradient_type is GradientType.CLIMB
    )
    return climbed / (distance_m / 1000.0)


def _reset_derived_fields(route: RouteGroup) -> None:
    defaults = RouteGroup(route_id=route.route_id, activities=set(), master_activity_id=0)
    for name in (
        "route_type",
        "polyline",
        "distance_m",
        "total_elevation_gain",
        "average_speed",
        "description",
        "bounding_box",
        "center",
        "distance_from_reference_km",
        "location_city",
        "location_country",
        "climb_per_km",
    ):
        setattr(route, name, getattr(defaults, name))
    route.gradients = []


__all__ = [
    "RouteService",
    "RouteServiceConfig",
    "RouteUpdateResult",
    "TelemetryLoader",
]
