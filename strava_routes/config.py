"""Central configuration for the route commonality and gradient engine.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Every tunable can be overridden through an environment
variable of the same name (optionally via a local `.env`).
"""

from __future__ import annotations

import importlib
import os
from typing import Tuple


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_latlng(key: str, default: Tuple[float, float]) -> Tuple[float, float]:
    value = os.getenv(key)
    if value is None:
        return default
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2:
        return default
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Route matching
# ---------------------------------------------------------------------------
# Decimal digits kept when bucketing coordinates. Coarse enough to absorb GPS
# jitter between two recordings of the same road, fine enough to keep nearby
# roads apart.
COMMONALITY_DIGIT_ACCURACY = _env_float("COMMONALITY_DIGIT_ACCURACY", 3.5)

# Minimum shared-point percentage for two activities to be the same route.
# The same value bounds the relative length difference (100 - threshold).
MATCH_THRESHOLD = _env_int("MATCH_THRESHOLD", 85)

# Cap on activities loaded into a single rewrite run. Set to 0 to disable.
ROUTE_MATCHING_MAX_ACTIVITIES = _env_int("ROUTE_MATCHING_MAX_ACTIVITIES", 0)

# Maximum number of telemetry payloads kept by the route service loader cache.
TELEMETRY_CACHE_SIZE = _env_int("TELEMETRY_CACHE_SIZE", 256)


# ---------------------------------------------------------------------------
# Gradient segmentation
# ---------------------------------------------------------------------------
# Grade (percent) at or above which a point counts as climbing.
CLIMB_GRADIENT_THRESHOLD = _env_float("CLIMB_GRADIENT_THRESHOLD", 6.0)
# Grade (percent) at or below which a point counts as descending.
DESCENT_GRADIENT_THRESHOLD = _env_float("DESCENT_GRADIENT_THRESHOLD", -3.0)

# Distance (metres) a segment may deviate from its direction before it ends.
GRADIENT_FLUCTUATION_ALLOWANCE_M = _env_float(
    "GRADIENT_FLUCTUATION_ALLOWANCE_M", 600.0
)

# Shortest climb / descent (metres) worth reporting.
GRADIENT_MIN_LENGTH_CLIMB_M = _env_float("GRADIENT_MIN_LENGTH_CLIMB_M", 900.0)
GRADIENT_MIN_LENGTH_DESCENT_M = _env_float("GRADIENT_MIN_LENGTH_DESCENT_M", 2000.0)

# Elevation profile resampling: take a sample once the accumulated grade change
# or the distance since the previous sample exceeds these values.
PROFILE_GRADE_DELTA = _env_float("PROFILE_GRADE_DELTA", 1.0)
PROFILE_DISTANCE_DELTA_M = _env_float("PROFILE_DISTANCE_DELTA_M", 25.0)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------
# Precision of Strava summary polylines.
POLYLINE_PRECISION = _env_int("POLYLINE_PRECISION", 5)

# Degrees within which a telemetry sample and a polyline vertex are considered
# the same point when remapping indices.
POLYLINE_MATCH_TOLERANCE_DEG = _env_float("POLYLINE_MATCH_TOLERANCE_DEG", 0.00005)

# Reference location (lat, lng) used for the route "distance from" metric.
# Format for the environment override: "lat,lng".
ROUTE_REFERENCE_LATLNG = _env_latlng("ROUTE_REFERENCE_LATLNG", (44.439663, 26.096306))


# ---------------------------------------------------------------------------
# Excel report formatting
# ---------------------------------------------------------------------------
ROUTES_SHEET = "Routes"
GRADIENTS_SHEET = "Gradients"

# Automatically size columns after writing each sheet (openpyxl only).
REPORT_AUTOSIZE_COLUMNS = _env_bool("REPORT_AUTOSIZE_COLUMNS", True)
REPORT_AUTOSIZE_MAX_WIDTH = 50  # characters
REPORT_AUTOSIZE_MIN_WIDTH = 6  # characters
REPORT_AUTOSIZE_PADDING = 2  # extra characters added to the detected max
