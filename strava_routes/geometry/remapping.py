"""Translate indices between raw telemetry and a route polyline."""

from __future__ import annotations

from typing import List, Sequence

from ..config import POLYLINE_MATCH_TOLERANCE_DEG
from .models import LatLon
from .primitives import decode_polyline


def _same_point(vertex: LatLon, sample: LatLon, tolerance: float) -> bool:
    return (
        abs(vertex[0] - sample[0]) <= tolerance
        and abs(vertex[1] - sample[1]) <= tolerance
    )


def create_mapping_table(
    polyline_points: Sequence[LatLon],
    telemetry_latlngs: Sequence[LatLon],
    *,
    tolerance_deg: float = POLYLINE_MATCH_TOLERANCE_DEG,
) -> List[int]:
    """Return, for each telemetry index, the matching polyline vertex index.

    The polyline is assumed to be an ordered subset (within ``tolerance_deg``)
    of the telemetry samples. Each telemetry sample maps to the next polyline
    vertex that has not yet been consumed; a vertex is consumed when a sample
    lands on it.
    """

    remapped: List[int] = [0] * len(telemetry_latlngs)
    vertex_index = 0
    vertex_count = len(polyline_points)
    for telemetry_index, sample in enumerate(telemetry_latlngs):
        remapped[telemetry_index] = vertex_index
        if vertex_index < vertex_count and _same_point(
            polyline_points[vertex_index], sample, tolerance_deg
        ):
            vertex_index += 1
    return remapped


def create_polyline_mapping_table(
    encoded_polyline: str,
    telemetry_latlngs: Sequence[LatLon],
    *,
    tolerance_deg: float = POLYLINE_MATCH_TOLERANCE_DEG,
) -> List[int]:
    """Decode ``encoded_polyline`` and build its mapping table."""

    return create_mapping_table(
        decode_polyline(encoded_polyline),
        telemetry_latlngs,
        tolerance_deg=tolerance_deg,
    )


def remap_index(table: Sequence[int], index: int) -> int:
    """Look up ``index`` in a mapping table.

    Raises:
        IndexError: If ``index`` lies outside the telemetry frame.
    """

    if index < 0 or index >= len(table):
        raise IndexError(
            f"Index {index} outside telemetry frame of {len(table)} samples"
        )
    return table[index]


__all__ = ["create_mapping_table", "create_polyline_mapping_table", "remap_index"]
