"""Read Strava stream and activity JSON dumps into engine models."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

from .errors import TelemetryFormatError
from .geometry.models import LatLon
from .models import ActivitySummary, SegmentEffortRef, Telemetry

_LOG = logging.getLogger(__name__)

_FLOAT_STREAMS = ("distance", "altitude", "grade_smooth", "velocity_smooth", "time")


def _coerce_int(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _coerce_float(value: Any) -> float | None:
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _stream_data(payload: Mapping[str, Any], key: str) -> Sequence[Any]:
    """Return the raw samples for ``key`` in any of the Strava stream layouts.

    Supported layouts: ``{"latlng": {"data": [...]}}`` (``key_by_type``),
    ``{"latlng": [...]}`` and ``{"streams": [{"type": "latlng", "data": [...]}]}``.
    """

    value = payload.get(key)
    if isinstance(value, Mapping):
        value = value.get("data")
    if value is None:
        streams = payload.get("streams")
        if isinstance(streams, Mapping):
            return _stream_data(streams, key)
        if isinstance(streams, list):
            for stream in streams:
                if isinstance(stream, Mapping) and stream.get("type") == key:
                    value = stream.get("data")
                    break
    if value is None:
        return []
    if not isinstance(value, list):
        raise TelemetryFormatError(f"Stream '{key}' is not a list of samples")
    return value


def _normalize_point(point: Any) -> LatLon:
    if not isinstance(point, (list, tuple)) or len(point) != 2:
        raise TelemetryFormatError("Expected lat/lon pair in latlng stream")
    lat, lon = point
    return float(lat), float(lon)


def telemetry_from_payload(
    payload: Mapping[str, Any],
    *,
    activity_id: int | None = None,
    activity_type: str | None = None,
) -> Telemetry:
    """Build :class:`Telemetry` from a stream payload.

    Raises:
        TelemetryFormatError: If the payload has no usable id or type, or a
            stream is malformed.
        TelemetryLengthMismatchError: If the streams differ in length.
    """

    if activity_id is None:
        activity_id = _coerce_int(payload.get("_id", payload.get("id")))
    if activity_id is None:
        raise TelemetryFormatError("Telemetry payload has no activity id")
    if activity_type is None:
        raw_type = payload.get("type") or payload.get("sport_type")
        activity_type = str(raw_type).strip() if raw_type else ""
    if not activity_type:
        raise TelemetryFormatError(f"Telemetry {activity_id} has no activity type")

    try:
        float_streams: Dict[str, List[float]] = {
            key: [float(sample) for sample in _stream_data(payload, key)]
            for key in _FLOAT_STREAMS
        }
    except (TypeError, ValueError) as exc:
        raise TelemetryFormatError(
            f"Telemetry {activity_id} contains non-numeric samples"
        ) from exc
    telemetry = Telemetry(
        activity_id=activity_id,
        activity_type=activity_type,
        latlng=[_normalize_point(point) for point in _stream_data(payload, "latlng")],
        **float_streams,
    )
    return telemetry.validate()


def summary_from_payload(payload: Mapping[str, Any]) -> ActivitySummary:
    """Build :class:`ActivitySummary` from a Strava activity payload."""

    activity_id = _coerce_int(payload.get("_id", payload.get("id")))
    if activity_id is None:
        raise TelemetryFormatError("Activity payload has no id")
    map_payload = payload.get("map")
    polyline = ""
    if isinstance(map_payload, Mapping):
        polyline = map_payload.get("polyline") or map_payload.get("summary_polyline") or ""
    efforts: List[SegmentEffortRef] = []
    for effort in payload.get("segment_efforts") or []:
        if not isinstance(effort, Mapping):
            continue
        start_index = _coerce_int(effort.get("start_index"))
        if start_index is None:
            continue
        segment = effort.get("segment")
        segment = segment if isinstance(segment, Mapping) else {}
        efforts.append(
            SegmentEffortRef(
                start_index=start_index,
                city=segment.get("city"),
                country=segment.get("country"),
            )
        )
    return ActivitySummary(
        activity_id=activity_id,
        activity_type=str(payload.get("type") or payload.get("sport_type") or ""),
        distance_m=_coerce_float(payload.get("distance")),
        total_elevation_gain=_coerce_float(payload.get("total_elevation_gain")),
        average_speed=_coerce_float(payload.get("average_speed")),
        polyline=polyline,
        description=payload.get("description"),
        location_city=payload.get("location_city"),
        location_country=payload.get("location_country"),
        segment_efforts=efforts,
    )


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def load_telemetry_file(path: str | Path) -> Telemetry:
    path = Path(path)
    payload = _read_json(path)
    if not isinstance(payload, Mapping):
        raise TelemetryFormatError(f"{path} does not contain a telemetry object")
    return telemetry_from_payload(payload)


def load_telemetry_dir(directory: str | Path) -> List[Telemetry]:
    """Load every ``*.json`` telemetry dump in ``directory``.

    Files that cannot be interpreted are logged and skipped.
    """

    telemetries: List[Telemetry] = []
    for path in sorted(Path(directory).glob("*.json")):
        try:
            telemetries.append(load_telemetry_file(path))
        except (TelemetryFormatError, json.JSONDecodeError) as exc:
            _LOG.warning("Skipping %s: %s", path.name, exc)
    _LOG.info("Loaded %d telemetry files from %s", len(telemetries), directory)
    return telemetries


def load_activity_summaries(path: str | Path) -> Dict[int, ActivitySummary]:
    """Load a JSON list of Strava activities keyed by activity id."""

    payload = _read_json(Path(path))
    if not isinstance(payload, list):
        raise TelemetryFormatError(f"{path} does not contain a list of activities")
    summaries: Dict[int, ActivitySummary] = {}
    for item in payload:
        if not isinstance(item, Mapping):
            continue
        summary = summary_from_payload(item)
        summaries[summary.activity_id] = summary
    return summaries


__all__ = [
    "load_activity_summaries",
    "load_telemetry_dir",
    "load_telemetry_file",
    "summary_from_payload",
    "telemetry_from_payload",
]
