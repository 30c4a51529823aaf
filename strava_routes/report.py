"""Excel report of matched routes and their gradients."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from .config import (
    GRADIENTS_SHEET,
    REPORT_AUTOSIZE_COLUMNS,
    REPORT_AUTOSIZE_MAX_WIDTH,
    REPORT_AUTOSIZE_MIN_WIDTH,
    REPORT_AUTOSIZE_PADDING,
    ROUTES_SHEET,
)
from .models import RouteGroup

LOGGER = logging.getLogger(__name__)

HEADER_FONT = Font(bold=True)

ROUTE_COLUMNS = [
    "Route ID",
    "Type",
    "Master Activity",
    "Activities",
    "Activity IDs",
    "Distance (km)",
    "Elevation Gain (m)",
    "Climb per km (m)",
    "City",
    "Country",
    "Center Lat",
    "Center Lng",
    "Distance From Reference (km)",
    "Gradients",
]

GRADIENT_COLUMNS = [
    "Route ID",
    "Kind",
    "Start Index",
    "End Index",
    "Length (m)",
    "Avg Gradient (%)",
    "Max Gradient (%)",
    "Elevation Change (m)",
    "City",
    "Country",
]


def _round(value: float | None, digits: int = 2) -> float | None:
    return None if value is None else round(value, digits)


def _route_row(route: RouteGroup) -> Dict[str, Any]:
    center = route.center
    return {
        "Route ID": route.route_id,
        "Type": route.route_type or route.activity_type,
        "Master Activity": route.master_activity_id,
        "Activities": len(route.activities),
        "Activity IDs": ", ".join(str(act) for act in sorted(route.activities)),
        "Distance (km)": _round(
            route.distance_m / 1000.0 if route.distance_m is not None else None
        ),
        "Elevation Gain (m)": _round(route.total_elevation_gain, 1),
        "Climb per km (m)": _round(route.climb_per_km),
        "City": route.location_city,
        "Country": route.location_country,
        "Center Lat": _round(center[0], 6) if center else None,
        "Center Lng": _round(center[1], 6) if center else None,
        "Distance From Reference (km)": _round(route.distance_from_reference_km, 1),
        "Gradients": len(route.gradients),
    }


def build_report_frames(
    routes: Sequence[RouteGroup],
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Return (routes, gradients) data frames ordered by route id."""

    ordered = sorted(routes, key=lambda route: route.route_id)
    route_rows = [_route_row(route) for route in ordered]
    gradient_rows: List[Dict[str, Any]] = []
    for route in ordered:
        for gradient in route.gradients:
            gradient_rows.append(
                {
                    "Route ID": route.route_id,
                    "Kind": gradient.gradient_type.value,
                    "Start Index": gradient.start_index,
                    "End Index": gradient.end_index,
                    "Length (m)": _round(gradient.length_m, 1),
                    "Avg Gradient (%)": _round(gradient.avg_gradient),
                    "Max Gradient (%)": _round(gradient.max_gradient),
                    "Elevation Change (m)": _round(gradient.elevation_gain, 1),
                    "City": gradient.location_city,
                    "Country": gradient.location_country,
                }
            )
    return (
        pd.DataFrame(route_rows, columns=ROUTE_COLUMNS),
        pd.DataFrame(gradient_rows, columns=GRADIENT_COLUMNS),
    )


def _autosize(ws: Worksheet) -> None:
    if not REPORT_AUTOSIZE_COLUMNS:
        return
    for col_cells in ws.columns:
        max_len = 0
        col_letter = getattr(col_cells[0], "column_letter", None)
        for cell in col_cells:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        if col_letter is None:
            continue
        ws.column_dimensions[col_letter].width = min(
            REPORT_AUTOSIZE_MAX_WIDTH,
            max(REPORT_AUTOSIZE_MIN_WIDTH, max_len + REPORT_AUTOSIZE_PADDING),
        )


def write_route_report(path: str | Path, routes: Sequence[RouteGroup]) -> Path:
    """Write routes and gradients to an ``.xlsx`` workbook and return its path."""

    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    routes_df, gradients_df = build_report_frames(routes)
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        routes_df.to_excel(writer, sheet_name=ROUTES_SHEET, index=False)
        gradients_df.to_excel(writer, sheet_name=GRADIENTS_SHEET, index=False)
        for sheet_name in (ROUTES_SHEET, GRADIENTS_SHEET):
            ws = writer.sheets[sheet_name]
            for cell in ws[1]:
                cell.font = HEADER_FONT
            _autosize(ws)
    LOGGER.info(
        "Wrote %d routes and %d gradients to %s",
        len(routes_df),
        len(gradients_df),
        output,
    )
    return output


__all__ = ["build_report_frames", "write_route_report"]
