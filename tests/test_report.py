"""Excel report smoke tests."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
from openpyxl import load_workbook

from strava_routes.config import GRADIENTS_SHEET, ROUTES_SHEET
from strava_routes.models import Gradient, GradientType, RouteGroup
from strava_routes.report import (
    GRADIENT_COLUMNS,
    ROUTE_COLUMNS,
    build_report_frames,
    write_route_report,
)


def _routes() -> list[RouteGroup]:
    climb = Gradient(
        gradient_type=GradientType.CLIMB,
        start_index=1,
        end_index=34,
        length_m=3390.0,
        avg_gradient=6.938,
        max_gradient=8.0,
        elevation_gain=239.2,
        location_city="Sinaia",
    )
    processed = RouteGroup(
        route_id=2,
        activities={5, 3},
        master_activity_id=3,
        activity_type="Ride",
        route_type="RouteRide",
        distance_m=3400.0,
        center=(44.41, 26.1),
        climb_per_km=70.35,
        gradients=[climb],
    )
    pending = RouteGroup(route_id=1, activities={9}, master_activity_id=9, activity_type="Run")
    return [processed, pending]


def test_build_report_frames() -> None:
    routes_df, gradients_df = build_report_frames(_routes())

    assert list(routes_df.columns) == ROUTE_COLUMNS
    assert list(gradients_df.columns) == GRADIENT_COLUMNS
    assert routes_df["Route ID"].tolist() == [1, 2]
    row = routes_df.iloc[1]
    assert row["Activity IDs"] == "3, 5"
    assert row["Distance (km)"] == 3.4
    assert row["Type"] == "RouteRide"
    assert routes_df.iloc[0]["Type"] == "Run"
    assert gradients_df.iloc[0]["Kind"] == "climb"
    assert gradients_df.iloc[0]["Route ID"] == 2


def test_write_route_report(tmp_path: Path) -> None:
    output = write_route_report(tmp_path / "out" / "routes.xlsx", _routes())

    assert output.exists()
    wb = load_workbook(output)
    assert wb.sheetnames == [ROUTES_SHEET, GRADIENTS_SHEET]
    assert wb[ROUTES_SHEET]["A1"].font.bold
    routes_df = pd.read_excel(output, sheet_name=ROUTES_SHEET)
    assert len(routes_df) == 2
    gradients_df = pd.read_excel(output, sheet_name=GRADIENTS_SHEET)
    assert gradients_df["City"].tolist() == ["Sinaia"]


def test_write_empty_report(tmp_path: Path) -> None:
    output = write_route_report(tmp_path / "empty.xlsx", [])
    routes_df = pd.read_excel(output, sheet_name=ROUTES_SHEET)
    assert list(routes_df.columns) == ROUTE_COLUMNS
    assert routes_df.empty
