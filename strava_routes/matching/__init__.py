"""Route commonality: group an athlete's activities that follow the same path.

Typical use::

    commonality = RouteCommonality()
    for telemetry in telemetries:
        commonality.load_telemetry(telemetry)
    routes = commonality.matched_routes()

For incremental updates load the new activities, call ``matched_routes`` to
cluster them, then load each existing route's master telemetry and ask
``is_matched(master_id, cluster.activities)``.
"""

from __future__ import annotations

import logging
from typing import Any, Collection, Dict, List

from ..config import COMMONALITY_DIGIT_ACCURACY, MATCH_THRESHOLD
from ..models import ActivityId, MatchResult, RouteGroup, Telemetry
from .clustering import ClusterMerger, ClusterResult, verify_partition
from .incremental import IncrementalMatcher
from .overlap import OverlapCount, SpatialOverlapIndex
from .scoring import score

_LOG = logging.getLogger(__name__)


class RouteCommonality:
    """Single-run matching state for one athlete.

    Instances hold all mutable state for the run; use one instance per
    athlete and per run.
    """

    def __init__(
        self,
        *,
        digit_accuracy: float = COMMONALITY_DIGIT_ACCURACY,
        threshold: int = MATCH_THRESHOLD,
        first_route_index: int = 1,
    ) -> None:
        self._threshold = threshold
        self._index = SpatialOverlapIndex(digit_accuracy=digit_accuracy)
        self._matcher = IncrementalMatcher(self._index, threshold=threshold)
        self._first_route_index = first_route_index
        self.diagnostics: Dict[str, Any] = {}

    @property
    def index(self) -> SpatialOverlapIndex:
        return self._index

    def set_first_route_index(self, index: int) -> None:
        """Start numbering newly created routes at ``index``."""

        self._first_route_index = index

    def load_telemetry(self, telemetry: Telemetry) -> bool:
        """Ingest an activity; ``False`` when it has no usable GPS points."""

        loaded = self._index.ingest_telemetry(telemetry)
        if not loaded:
            _LOG.warning(
                "Activity %s has no GPS telemetry; excluded from matching",
                telemetry.activity_id,
            )
        return loaded

    def match_results(self) -> List[MatchResult]:
        return score(
            self._index.overlap,
            self._index.lengths,
            self._index.point_counts,
            threshold=self._threshold,
        )

    def clusters(self) -> List[ClusterResult]:
        results = self.match_results()
        merger = ClusterMerger(self._index.lengths, threshold=self._threshold)
        clusters = merger.merge(results, self._index.activity_ids)
        missing = verify_partition(clusters, self._index.activity_ids)
        self.diagnostics = {
            "activities": len(self._index),
            "points": self._index.points_total,
            "match_results": len(results),
            "groups": len(clusters),
            "missing_activities": sorted(missing),
        }
        return clusters

    def matched_routes(self) -> List[RouteGroup]:
        """Cluster everything loaded so far into route groups."""

        clusters = self.clusters()
        routes: List[RouteGroup] = []
        for offset, cluster in enumerate(clusters):
            routes.append(
                RouteGroup(
                    route_id=self._first_route_index + offset,
                    activities=set(cluster.activities),
                    master_activity_id=cluster.master_activity_id,
                    activity_type=self._index.activity_type(cluster.master_activity_id),
                )
            )
        _LOG.info(
            "Grouped %d activities into %d routes (%d shared)",
            len(self._index),
            len(routes),
            sum(1 for route in routes if len(route.activities) > 1),
        )
        return routes

    def is_matched(
        self, master_activity_id: ActivityId, candidate_group: Collection[ActivityId]
    ) -> bool:
        return self._matcher.is_matched(master_activity_id, candidate_group)


__all__ = [
    "ClusterMerger",
    "ClusterResult",
    "IncrementalMatcher",
    "OverlapCount",
    "RouteCommonality",
    "SpatialOverlapIndex",
    "score",
    "verify_partition",
]
