"""Geographic primitives: polylines, bounding geometry, distances and index remapping."""

from .models import BoundingBox, LatLon
from .primitives import (
    bounding_box,
    bounding_box_center,
    decode_polyline,
    encode_polyline,
    great_circle_distance,
    path_length,
    reduce_accuracy,
)
from .remapping import create_mapping_table, create_polyline_mapping_table, remap_index

__all__ = [
    "BoundingBox",
    "LatLon",
    "bounding_box",
    "bounding_box_center",
    "create_mapping_table",
    "create_polyline_mapping_table",
    "decode_polyline",
    "encode_polyline",
    "great_circle_distance",
    "path_length",
    "reduce_accuracy",
    "remap_index",
]
