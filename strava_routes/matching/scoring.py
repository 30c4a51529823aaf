"""Turn raw overlap counts into ranked match percentages."""

from __future__ import annotations

import math
from typing import List, Mapping, Optional

from ..config import MATCH_THRESHOLD
from ..models import ActivityId, MatchResult


def match_percentage(count: int, point_count: int) -> int:
    """Percentage of ``point_count`` covered by ``count``, rounded half up."""

    if point_count <= 0:
        return 0
    clamped = min(count, point_count)
    return int(math.floor(100.0 * clamped / point_count + 0.5))


def length_difference_pct(first_m: float, second_m: float) -> float:
    longest = max(first_m, second_m)
    if longest <= 0.0:
        return 0.0
    return 100.0 * abs(first_m - second_m) / longest


def gated_percentage(
    count: int,
    source_points: int,
    dest_points: int,
    source_length: float,
    dest_length: float,
    *,
    threshold: int = MATCH_THRESHOLD,
) -> Optional[int]:
    """Directed match percentage from source to dest, or ``None`` when gated out."""

    shared = min(count, source_points, dest_points)
    pct = match_percentage(shared, source_points)
    if pct < threshold:
        return None
    if length_difference_pct(source_length, dest_length) > 100 - threshold:
        return None
    return pct


def result_sort_key(result: MatchResult) -> tuple[int, ActivityId, ActivityId]:
    return -result.percentage, result.source_id, result.dest_id


def score(
    overlap: Mapping[ActivityId, Mapping[ActivityId, int]],
    lengths: Mapping[ActivityId, float],
    point_counts: Mapping[ActivityId, int],
    *,
    threshold: int = MATCH_THRESHOLD,
    touching: Optional[ActivityId] = None,
) -> List[MatchResult]:
    """Return directed matches that clear both the overlap and length gates.

    Two tracks can share most of their points yet be different routes (an
    out-and-back from a shared trailhead), so a pair must also have lengths
    within ``100 - threshold`` percent of each other. When ``touching`` is
    given only pairs with that activity on either end are scored.

    Results are ordered by percentage (highest first), then source id, then
    destination id.
    """

    results: List[MatchResult] = []
    for source_id, destinations in overlap.items():
        for dest_id, count in destinations.items():
            if source_id == dest_id:
                continue
            if touching is not None and touching not in (source_id, dest_id):
                continue
            pct = gated_percentage(
                count,
                point_counts[source_id],
                point_counts[dest_id],
                lengths[source_id],
                lengths[dest_id],
                threshold=threshold,
            )
            if pct is None:
                continue
            results.append(MatchResult(pct, source_id, dest_id))
    results.sort(key=result_sort_key)
    return results


__all__ = [
    "gated_percentage",
    "length_difference_pct",
    "match_percentage",
    "result_sort_key",
    "score",
]
