"""Union scored activity pairs into disjoint route groups."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Set

from ..config import MATCH_THRESHOLD
from ..models import ActivityId, MatchResult

_LOG = logging.getLogger(__name__)

_SELF_MATCH_PCT = 100


@dataclass(slots=True)
class DistributionEntry:
    """Shortest activity seen at one match-percentage tier and the tier size."""

    candidate_id: ActivityId
    occurrences: int = 0


@dataclass(slots=True)
class GroupInfo:
    """Mutable state for one group while a merge run is in progress."""

    group_id: int
    # dict used as an insertion-ordered set
    members: Dict[ActivityId, None] = field(default_factory=dict)
    distribution: Dict[int, DistributionEntry] = field(default_factory=dict)

    @property
    def first_member(self) -> ActivityId:
        return next(iter(self.members))

    def master_activity_id(self) -> ActivityId:
        """Candidate of the highest non-self-match tier, else the first member."""

        tiers = [pct for pct in self.distribution if pct != _SELF_MATCH_PCT]
        if not tiers:
            return self.first_member
        return self.distribution[max(tiers)].candidate_id


@dataclass(slots=True)
class ClusterResult:
    """Finalized group: members in insertion order plus the chosen master."""

    activities: List[ActivityId]
    master_activity_id: ActivityId
    distribution: Dict[int, DistributionEntry]


class ClusterMerger:
    """Build disjoint groups from match results processed best-first.

    Groups live in an id-keyed map with an activity -> group reverse index
    that is updated on every merge, so no group is ever shared by reference.
    """

    def __init__(
        self,
        lengths: Mapping[ActivityId, float],
        *,
        threshold: int = MATCH_THRESHOLD,
    ) -> None:
        self._lengths = lengths
        self._threshold = threshold
        self._groups: Dict[int, GroupInfo] = {}
        self._group_of: Dict[ActivityId, int] = {}
        self._next_group_id = 0

    def merge(
        self,
        results: Iterable[MatchResult],
        activities: Iterable[ActivityId] = (),
    ) -> List[ClusterResult]:
        """Group activities and pick a master per group.

        ``results`` must already be ordered best-first. Activities listed in
        ``activities`` that no result places in a group become singletons.
        """

        for result in results:
            self._apply(result)
        for activity_id in activities:
            if activity_id not in self._group_of:
                self._new_group(activity_id)
        return [
            ClusterResult(
                activities=list(group.members),
                master_activity_id=group.master_activity_id(),
                distribution=dict(group.distribution),
            )
            for group in self._groups.values()
        ]

    def group_of(self, activity_id: ActivityId) -> Optional[int]:
        return self._group_of.get(activity_id)

    def _apply(self, result: MatchResult) -> None:
        source_id, dest_id = result.source_id, result.dest_id
        passes = result.percentage >= self._threshold
        source_group = self._group_of.get(source_id)
        dest_group = self._group_of.get(dest_id)

        if source_group is None and dest_group is None:
            if not passes:
                self._new_group(source_id)
                if dest_id != source_id:
                    self._new_group(dest_id)
                return
            group = self._new_group(source_id)
            self._add_member(group, dest_id)
        elif not passes:
            if source_group is None:
                self._new_group(source_id)
            elif dest_group is None:
                self._new_group(dest_id)
            return
        elif source_group is None:
            group = self._groups[dest_group]  # type: ignore[index]
            self._add_member(group, source_id)
        elif dest_group is None:
            group = self._groups[source_group]
            self._add_member(group, dest_id)
        else:
            group = self._groups[source_group]
            if dest_group != source_group:
                self._absorb(group, self._groups.pop(dest_group))
        self._record(group, result)

    def _new_group(self, activity_id: ActivityId) -> GroupInfo:
        group = GroupInfo(group_id=self._next_group_id)
        self._next_group_id += 1
        self._groups[group.group_id] = group
        self._add_member(group, activity_id)
        return group

    def _add_member(self, group: GroupInfo, activity_id: ActivityId) -> None:
        group.members[activity_id] = None
        self._group_of[activity_id] = group.group_id

    def _absorb(self, target: GroupInfo, other: GroupInfo) -> None:
        for activity_id in other.members:
            self._add_member(target, activity_id)
        for pct, entry in other.distribution.items():
            existing = target.distribution.get(pct)
            if existing is None:
                target.distribution[pct] = DistributionEntry(
                    entry.candidate_id, entry.occurrences
                )
                continue
            existing.occurrences += entry.occurrences
            existing.candidate_id = self._shortest(
                existing.candidate_id, entry.candidate_id
            )

    def _record(self, group: GroupInfo, result: MatchResult) -> None:
        entry = group.distribution.get(result.percentage)
        if entry is None:
            entry = DistributionEntry(result.source_id)
            group.distribution[result.percentage] = entry
        entry.occurrences += 1
        entry.candidate_id = self._shortest(
            entry.candidate_id, result.source_id, result.dest_id
        )

    def _shortest(self, *activity_ids: ActivityId) -> ActivityId:
        # min() keeps the first of equally long activities
        return min(activity_ids, key=lambda act: self._lengths.get(act, 0.0))


def verify_partition(
    clusters: Iterable[ClusterResult], expected: Iterable[ActivityId]
) -> Set[ActivityId]:
    """Return activities from ``expected`` missing from every cluster.

    Activities appearing in more than one cluster are logged as well.
    """

    seen: Set[ActivityId] = set()
    duplicated: Set[ActivityId] = set()
    for cluster in clusters:
        for activity_id in cluster.activities:
            if activity_id in seen:
                duplicated.add(activity_id)
            seen.add(activity_id)
    missing = set(expected) - seen
    if missing:
        _LOG.error(
            "%d activities missing from route groups: %s",
            len(missing),
            sorted(missing),
        )
    if duplicated:
        _LOG.error(
            "%d activities assigned to more than one route group: %s",
            len(duplicated),
            sorted(duplicated),
        )
    return missing


__all__ = [
    "ClusterMerger",
    "ClusterResult",
    "DistributionEntry",
    "GroupInfo",
    "verify_partition",
]
