"""Normalization of raw device geolocation signals.

Browsers report either a position (``coords`` + ``timestamp``) or an error
(``code`` + ``message``). Callers hand whatever they received to
:func:`normalize_position` and always get back a :class:`GeoSuccess` or a
:class:`GeoError`; nothing here raises for bad input.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Mapping
from typing import Any

from locate_engine.models import (
    Coordinate,
    GeoError,
    GeoErrorKind,
    GeoReading,
    GeoResult,
    GeoSuccess,
)

SUCCESS_TITLE = "Location updated"
ERROR_TITLE = "Geolocation error"
UNEXPECTED_MESSAGE = "Unexpected response from Geolocation API."
UNKNOWN_MESSAGE = "An unknown error occurred."

_ERROR_CODES: dict[int, tuple[GeoErrorKind, str]] = {
    1: (GeoErrorKind.PERMISSION_DENIED, "User denied the request for Geolocation."),
    2: (GeoErrorKind.POSITION_UNAVAILABLE, "Location information is unavailable."),
    3: (GeoErrorKind.TIMEOUT, "The request to get user location timed out."),
}


def _field(source: Any, *names: str) -> Any:
    for name in names:
        if isinstance(source, Mapping):
            if name in source:
                return source[name]
        elif hasattr(source, name):
            return getattr(source, name)
    return None


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _current_time_ms() -> int:
    return int(time.time() * 1000)


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _coordinate_from(coords: Any) -> Coordinate | None:
    if coords is None:
        return None
    latitude = _finite(_field(coords, "latitude"))
    longitude = _finite(_field(coords, "longitude"))
    if latitude is None or longitude is None:
        return None
    if not (-90 <= latitude <= 90 and -180 <= longitude <= 180):
        return None
    return Coordinate(latitude=latitude, longitude=longitude)


def normalize_position(
    raw: Any,
    now_ms: Callable[[], int] = _current_time_ms,
) -> GeoResult:
    if raw is None:
        return GeoError(kind=GeoErrorKind.UNKNOWN, title=ERROR_TITLE, message=UNEXPECTED_MESSAGE)

    coords = _field(raw, "coords")
    coordinate = _coordinate_from(coords)
    if coordinate is not None:
        accuracy = _finite(_field(coords, "accuracy"))
        if accuracy is not None and accuracy < 0:
            accuracy = None
        timestamp = _finite(_field(raw, "timestamp"))
        reading = GeoReading(
            coordinate=coordinate,
            timestamp_ms=int(timestamp) if timestamp is not None else now_ms(),
            accuracy=accuracy,
            altitude=_finite(_field(coords, "altitude")),
            altitude_accuracy=_finite(_field(coords, "altitudeAccuracy", "altitude_accuracy")),
            heading=_finite(_field(coords, "heading")),
            speed=_finite(_field(coords, "speed")),
        )
        message = (
            f"Latitude: {_format_number(coordinate.latitude)}, "
            f"Longitude: {_format_number(coordinate.longitude)}"
        )
        if accuracy is not None:
            message += f" (±{math.floor(accuracy + 0.5)}m)"
        return GeoSuccess(reading=reading, title=SUCCESS_TITLE, message=message)

    code = _finite(_field(raw, "code"))
    supplied_message = _field(raw, "message")
    if code is None and not isinstance(supplied_message, str):
        return GeoError(kind=GeoErrorKind.UNKNOWN, title=ERROR_TITLE, message=UNEXPECTED_MESSAGE)

    if code is not None and code.is_integer() and int(code) in _ERROR_CODES:
        kind, message = _ERROR_CODES[int(code)]
        return GeoError(kind=kind, title=ERROR_TITLE, message=message)
    fallback = supplied_message if isinstance(supplied_message, str) and supplied_message else UNKNOWN_MESSAGE
    return GeoError(kind=GeoErrorKind.UNKNOWN, title=ERROR_TITLE, message=fallback)


def geo_result_to_dict(result: GeoResult) -> dict[str, Any]:
    if isinstance(result, GeoError):
        return {"type": "error", "kind": result.kind.value, "title": result.title, "message": result.message}
    reading = result.reading
    coords: dict[str, Any] = {
        "latitude": reading.coordinate.latitude,
        "longitude": reading.coordinate.longitude,
    }
    if reading.accuracy is not None:
        coords["accuracy"] = reading.accuracy
    coords.update(
        {
            "altitude": reading.altitude,
            "altitudeAccuracy": reading.altitude_accuracy,
            "heading": reading.heading,
            "speed": reading.speed,
        }
    )
    return {
        "type": "success",
        "title": result.title,
        "message": result.message,
        "coords": coords,
        "timestamp": reading.timestamp_ms,
    }
