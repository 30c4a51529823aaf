"""Render a processed route and its gradients on an interactive map."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

import folium  # Using folium to build an interactive Leaflet map.

from .geometry.models import LatLon
from .geometry.primitives import decode_polyline
from .models import Gradient, GradientType, RouteGroup

PathLike = Union[str, Path]

_ROUTE_COLOR = "#2c7bb6"
_CLIMB_COLOR = "#d73027"
_DESCENT_COLOR = "#1a9641"


def _gradient_points(points: List[LatLon], gradient: Gradient) -> List[LatLon]:
    start = max(gradient.start_index, 0)
    end = min(gradient.end_index, len(points) - 1)
    if end <= start:
        return []
    return points[start : end + 1]


def create_route_map(
    route: RouteGroup,
    *,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create a map of ``route.polyline`` with climbs and descents highlighted.

    Gradient indices are expected in the polyline frame, as produced by the
    route processor.

    Raises:
        ValueError: If the route has no polyline yet.
    """

    points = decode_polyline(route.polyline)
    if not points:
        raise ValueError(f"Route {route.route_id} has no polyline to draw")

    center = route.center or points[0]
    folium_map = folium.Map(location=center, zoom_start=13, control_scale=True)
    folium.PolyLine(
        points,
        color=_ROUTE_COLOR,
        weight=4,
        opacity=0.6,
        tooltip=f"Route {route.route_id} ({len(route.activities)} activities)",
    ).add_to(folium_map)

    for gradient in route.gradients:
        section = _gradient_points(points, gradient)
        if len(section) < 2:
            continue
        is_climb = gradient.gradient_type is GradientType.CLIMB
        folium.PolyLine(
            section,
            color=_CLIMB_COLOR if is_climb else _DESCENT_COLOR,
            weight=6,
            opacity=0.9,
            tooltip=(
                f"{gradient.gradient_type.value}: {gradient.length_m / 1000.0:.2f} km "
                f"at {gradient.avg_gradient:.1f}%"
            ),
        ).add_to(folium_map)

    if route.bounding_box is not None:
        folium_map.fit_bounds(
            [list(route.bounding_box.south_west), list(route.bounding_box.north_east)]
        )

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_route_map"]
