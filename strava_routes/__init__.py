"""Strava route commonality and gradient engine."""

from .errors import (
    RouteEngineError,
    RouteNotFoundError,
    TelemetryFormatError,
    TelemetryLengthMismatchError,
)
from .gradient_finder import GradientFinder, find_gradients
from .main import main
from .matching import IncrementalMatcher, RouteCommonality, SpatialOverlapIndex
from .models import (
    ActivitySummary,
    Gradient,
    GradientType,
    MatchResult,
    RouteGroup,
    Telemetry,
)

__all__ = [
    "main",
    "ActivitySummary",
    "Gradient",
    "GradientFinder",
    "GradientType",
    "IncrementalMatcher",
    "MatchResult",
    "RouteCommonality",
    "RouteEngineError",
    "RouteGroup",
    "RouteNotFoundError",
    "SpatialOverlapIndex",
    "Telemetry",
    "TelemetryFormatError",
    "TelemetryLengthMismatchError",
    "find_gradients",
]
