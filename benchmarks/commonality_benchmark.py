"""Benchmark route commonality and gradient segmentation on synthetic tracks."""

from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from strava_routes.gradient_finder import GradientFinder  # noqa: E402
from strava_routes.matching import RouteCommonality  # noqa: E402
from strava_routes.models import Telemetry  # noqa: E402

_STEP_DEG = 9e-5  # roughly 10 m of latitude


@dataclass(slots=True)
class StageDurations:
    """Timing measurements (in seconds) for one benchmark iteration."""

    ingest: float
    cluster: float
    gradients: float

    @property
    def total(self) -> float:
        return self.ingest + self.cluster + self.gradients


@dataclass(slots=True)
class BenchmarkSummary:
    """Aggregated statistics for multiple benchmark iterations."""

    activities: int
    point_count: int
    iterations: int
    routes: int
    mean_ingest_ms: float
    mean_cluster_ms: float
    mean_gradients_ms: float
    mean_total_ms: float
    worst_total_ms: float


def _build_telemetry(activity_id: int, point_count: int, route_count: int) -> Telemetry:
    """Activities on the same route share a start; routes are spread east-west."""

    route = activity_id % route_count
    base_lat = 44.4 + (activity_id % 3) * 1e-6
    base_lng = 26.1 + route * 0.05
    grades = [6.5 if (idx // 200) % 2 == 0 else -3.5 for idx in range(point_count)]
    altitude = [100.0]
    for grade in grades[1:]:
        altitude.append(altitude[-1] + grade / 10.0)
    return Telemetry(
        activity_id=activity_id,
        activity_type="Ride",
        latlng=[(base_lat + idx * _STEP_DEG, base_lng) for idx in range(point_count)],
        distance=[idx * 10.0 for idx in range(point_count)],
        altitude=altitude,
        grade_smooth=grades,
    )


def _run_iteration(telemetries: List[Telemetry]) -> tuple[StageDurations, int]:
    start = time.perf_counter()
    commonality = RouteCommonality()
    for telemetry in telemetries:
        commonality.load_telemetry(telemetry)
    ingest = time.perf_counter() - start

    start = time.perf_counter()
    routes = commonality.matched_routes()
    cluster = time.perf_counter() - start

    finder = GradientFinder()
    start = time.perf_counter()
    for route in routes:
        master = telemetries[route.master_activity_id]
        finder.find_gradients(master)
    gradients = time.perf_counter() - start

    return StageDurations(ingest=ingest, cluster=cluster, gradients=gradients), len(routes)


def run_benchmark(
    activities: int, point_count: int, route_count: int, iterations: int
) -> BenchmarkSummary:
    """Benchmark matching plus segmentation and return aggregated timings."""

    if activities <= 0 or point_count <= 0 or route_count <= 0:
        raise ValueError("activities, points and routes must be positive")
    if iterations <= 0:
        raise ValueError("iterations must be positive")

    telemetries = [
        _build_telemetry(activity_id, point_count, route_count)
        for activity_id in range(activities)
    ]
    durations: List[StageDurations] = []
    routes = 0
    for _ in range(iterations):
        duration, routes = _run_iteration(telemetries)
        durations.append(duration)

    return BenchmarkSummary(
        activities=activities,
        point_count=point_count,
        iterations=iterations,
        routes=routes,
        mean_ingest_ms=statistics.fmean(item.ingest for item in durations) * 1000.0,
        mean_cluster_ms=statistics.fmean(item.cluster for item in durations) * 1000.0,
        mean_gradients_ms=statistics.fmean(item.gradients for item in durations)
        * 1000.0,
        mean_total_ms=statistics.fmean(item.total for item in durations) * 1000.0,
        worst_total_ms=max(item.total for item in durations) * 1000.0,
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    return {
        "activities": summary.activities,
        "point_count": summary.point_count,
        "iterations": summary.iterations,
        "routes": summary.routes,
        "mean_ingest_ms": summary.mean_ingest_ms,
        "mean_cluster_ms": summary.mean_cluster_ms,
        "mean_gradients_ms": summary.mean_gradients_ms,
        "mean_total_ms": summary.mean_total_ms,
        "worst_total_ms": summary.worst_total_ms,
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark route commonality with many synthetic activities",
    )
    parser.add_argument("--activities", type=int, default=200)
    parser.add_argument("--points", type=int, default=2000)
    parser.add_argument("--routes", type=int, default=10)
    parser.add_argument(
        "--iterations",
        type=int,
        default=3,
        help="Number of repetitions for averaging",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point when running the module as a script."""

    args = _parse_args()
    summary = run_benchmark(args.activities, args.points, args.routes, args.iterations)
    for key, value in _format_summary(summary).items():
        if key.endswith("_ms"):
            print(f"{key}: {value:.3f}")
        else:
            print(f"{key}: {value}")


if __name__ == "__main__":
    main()
