"""Central error types used across the application."""

from __future__ import annotations


class RouteEngineError(RuntimeError):
    """Base error for route matching and gradient segmentation failures."""


class TelemetryLengthMismatchError(RouteEngineError):
    """Raised when parallel telemetry streams do not share one index space."""


class TelemetryFormatError(RouteEngineError):
    """Raised when a telemetry payload cannot be interpreted."""


class RouteNotFoundError(RouteEngineError):
    """Raised when a route or activity is not held by the route collection."""


__all__ = [
    "RouteEngineError",
    "RouteNotFoundError",
    "TelemetryFormatError",
    "TelemetryLengthMismatchError",
]
