"""Service layer package.

Exports high-level services consumed by orchestration / presentation layers.
"""

from .route_service import (
    RouteService,
    RouteServiceConfig,
    RouteUpdateResult,
    TelemetryLoader,
)

__all__ = ["RouteService", "RouteServiceConfig", "RouteUpdateResult", "TelemetryLoader"]
