"""Fold new activity clusters into existing routes without re-clustering."""

from __future__ import annotations

import logging
from typing import Collection

from ..config import MATCH_THRESHOLD
from ..models import ActivityId
from .overlap import SpatialOverlapIndex
from .scoring import gated_percentage

_LOG = logging.getLogger(__name__)


class IncrementalMatcher:
    """Test an existing route's master against a group of new activities.

    The master's telemetry must have been ingested into ``index`` alongside
    the new activities. Only the master's own overlap row and the reverse
    counts of the candidates are read, so a test costs time proportional to
    the candidate group rather than to every pair in the index.
    """

    def __init__(
        self, index: SpatialOverlapIndex, *, threshold: int = MATCH_THRESHOLD
    ) -> None:
        self._index = index
        self._threshold = threshold

    def best_match_percentage(
        self, master_activity_id: ActivityId, candidate_group: Collection[ActivityId]
    ) -> int:
        """Highest gated match percentage between the master and the group, or 0."""

        index = self._index
        if master_activity_id not in index:
            return 0
        master_row = index.overlap_with(master_activity_id)
        master_points = index.point_count(master_activity_id)
        master_length = index.length(master_activity_id)
        best = 0
        for candidate_id in candidate_group:
            if candidate_id == master_activity_id or candidate_id not in index:
                continue
            candidate_points = index.point_count(candidate_id)
            candidate_length = index.length(candidate_id)
            forward = gated_percentage(
                master_row.get(candidate_id, 0),
                master_points,
                candidate_points,
                master_length,
                candidate_length,
                threshold=self._threshold,
            )
            backward = gated_percentage(
                index.overlap_with(candidate_id).get(master_activity_id, 0),
                candidate_points,
                master_points,
                candidate_length,
                master_length,
                threshold=self._threshold,
            )
            for pct in (forward, backward):
                if pct is not None:
                    best = max(best, pct)
        return best

    def is_matched(
        self, master_activity_id: ActivityId, candidate_group: Collection[ActivityId]
    ) -> bool:
        best = self.best_match_percentage(master_activity_id, candidate_group)
        matched = best >= self._threshold
        _LOG.debug(
            "Master %s vs %d candidates: best=%d matched=%s",
            master_activity_id,
            len(candidate_group),
            best,
            matched,
        )
        return matched


__all__ = ["IncrementalMatcher"]
