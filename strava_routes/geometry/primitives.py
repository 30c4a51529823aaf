"""Geographic primitives shared by the matcher and the route processor."""

from __future__ import annotations

import math
from typing import List, Sequence

from polyline import decode as polyline_decode
from polyline import encode as polyline_encode
from shapely.geometry import MultiPoint

from ..config import COMMONALITY_DIGIT_ACCURACY, POLYLINE_PRECISION
from .models import BoundingBox, LatLon

_EARTH_RADIUS_M = 6_371_000.0


def decode_polyline(encoded: str, precision: int = POLYLINE_PRECISION) -> List[LatLon]:
    """Decode an encoded polyline string into a list of (lat, lon) tuples."""

    if not encoded:
        return []
    try:
        decoded = polyline_decode(encoded, precision)
    except (ValueError, TypeError, IndexError) as exc:
        raise ValueError("Unable to decode polyline") from exc
    return [(float(lat), float(lon)) for lat, lon in decoded]


def encode_polyline(points: Sequence[LatLon], precision: int = POLYLINE_PRECISION) -> str:
    """Encode (lat, lon) pairs using the standard polyline algorithm."""

    if not points:
        return ""
    return polyline_encode([(float(lat), float(lon)) for lat, lon in points], precision)


def bounding_box(points: Sequence[LatLon]) -> BoundingBox:
    """Return the lat/lng box enclosing ``points``.

    Raises:
        ValueError: If ``points`` is empty.
    """

    if not points:
        raise ValueError("Cannot compute the bounding box of an empty track")
    min_lat, min_lng, max_lat, max_lng = MultiPoint(
        [(float(lat), float(lng)) for lat, lng in points]
    ).bounds
    return BoundingBox(
        min_lat=float(min_lat),
        min_lng=float(min_lng),
        max_lat=float(max_lat),
        max_lng=float(max_lng),
    )


def bounding_box_center(box: BoundingBox) -> LatLon:
    return (box.min_lat + box.max_lat) / 2.0, (box.min_lng + box.max_lng) / 2.0


def great_circle_distance(first: LatLon, second: LatLon) -> float:
    """Return the haversine distance in metres between two coordinates."""

    lat1, lon1 = first
    lat2, lon2 = second
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = lat2_rad - lat1_rad
    delta_lon = math.radians(lon2 - lon1)
    sin_half_lat = math.sin(delta_lat / 2.0)
    sin_half_lon = math.sin(delta_lon / 2.0)
    a = sin_half_lat**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * sin_half_lon**2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return _EARTH_RADIUS_M * c


def path_length(points: Sequence[LatLon]) -> float:
    """Sum of great-circle distances between consecutive points."""

    total = 0.0
    for previous, current in zip(points, points[1:]):
        total += great_circle_distance(previous, current)
    return total


def reduce_accuracy(value: float, digits: float = COMMONALITY_DIGIT_ACCURACY) -> int:
    """Map a coordinate component onto an integer grid.

    The integer part of ``digits`` selects the decimal place kept; a
    fractional part shifts the grid by that fraction and scales by ten so
    the result stays integral (``3.5`` keeps three decimals on a grid
    offset by half a cell).
    """

    whole = math.floor(digits)
    multiplier = 10.0**whole
    delta = digits - whole
    adjust = 10.0 if delta != 0.0 else 1.0
    return int(math.floor((math.floor(value * multiplier) + delta) * adjust))


__all__ = [
    "bounding_box",
    "bounding_box_center",
    "decode_polyline",
    "encode_polyline",
    "great_circle_distance",
    "path_length",
    "reduce_accuracy",
]
