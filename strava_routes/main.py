"""Command line entry point: cluster telemetry dumps and write a route report."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import RouteEngineError
from .models import ActivityId, ActivitySummary, RouteGroup, Telemetry
from .report import write_route_report
from .services import RouteService, RouteServiceConfig
from .telemetry_io import load_activity_summaries, load_telemetry_dir
from .visualization import create_route_map

LOGGER = logging.getLogger(__name__)


def _setup_logging(level: str = "INFO") -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, level),
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Group activities that follow the same route and report their gradients"
    )
    parser.add_argument(
        "--input",
        required=True,
        help="Directory of telemetry JSON files (one activity per file)",
    )
    parser.add_argument(
        "--output",
        default="routes.xlsx",
        help="Excel report path (default: routes.xlsx)",
    )
    parser.add_argument(
        "--activities",
        help="Optional JSON list of activity summaries (polyline, location, efforts)",
    )
    parser.add_argument(
        "--athlete-id",
        type=int,
        default=None,
        help="Athlete id stamped on the produced routes",
    )
    parser.add_argument(
        "--maps",
        help="Directory for per-route HTML maps (skipped when omitted)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Python logging level",
    )
    return parser


def _write_maps(routes: Sequence[RouteGroup], directory: Path) -> int:
    written = 0
    for route in routes:
        if not route.polyline:
            continue
        create_route_map(
            route, output_html_path=directory / f"route_{route.route_id}.html"
        )
        written += 1
    LOGGER.info("Wrote %d route maps to %s", written, directory)
    return written


def run(
    telemetries: Sequence[Telemetry],
    output: str | Path,
    *,
    summaries: Optional[Dict[ActivityId, ActivitySummary]] = None,
    athlete_id: int | None = None,
    maps_dir: str | Path | None = None,
) -> List[RouteGroup]:
    """Cluster, process and report ``telemetries``; return the routes."""

    by_id = {telemetry.activity_id: telemetry for telemetry in telemetries}
    service = RouteService(RouteServiceConfig(telemetry_loader=by_id.get))
    routes = service.rewrite_routes(telemetries, athlete_id=athlete_id)
    service.process_routes(routes, summaries)
    write_route_report(output, routes)
    if maps_dir is not None:
        _write_maps(routes, Path(maps_dir))
    return routes


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.log_level)

    telemetries = load_telemetry_dir(args.input)
    if not telemetries:
        LOGGER.error("No telemetry found in %s", args.input)
        return 1
    summaries: Dict[ActivityId, ActivitySummary] = {}
    if args.activities:
        try:
            summaries = load_activity_summaries(args.activities)
        except (RouteEngineError, OSError, json.JSONDecodeError) as exc:
            LOGGER.error("Failed to load activities '%s': %s", args.activities, exc)
            return 1

    routes = run(
        telemetries,
        args.output,
        summaries=summaries,
        athlete_id=args.athlete_id,
        maps_dir=args.maps,
    )
    LOGGER.info("Results saved to %s (%d routes)", args.output, len(routes))
    return 0
