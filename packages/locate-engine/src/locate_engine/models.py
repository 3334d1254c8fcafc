from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Union

from locate_engine.errors import CoordinateError


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise CoordinateError("Invalid coordinates: latitude and longitude must be finite numbers")
        if not -90 <= self.latitude <= 90:
            raise CoordinateError("Latitude must be within [-90, 90]")
        if not -180 <= self.longitude <= 180:
            raise CoordinateError("Longitude must be within [-180, 180]")

    def as_lat_lon(self) -> dict[str, float]:
        return {"lat": self.latitude, "lon": self.longitude}


@dataclass(frozen=True)
class GeoReading:
    coordinate: Coordinate
    timestamp_ms: int
    accuracy: float | None = None
    altitude: float | None = None
    altitude_accuracy: float | None = None
    heading: float | None = None
    speed: float | None = None


class GeoErrorKind(str, Enum):
    PERMISSION_DENIED = "PermissionDenied"
    POSITION_UNAVAILABLE = "PositionUnavailable"
    TIMEOUT = "Timeout"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class GeoSuccess:
    reading: GeoReading
    title: str
    message: str


@dataclass(frozen=True)
class GeoError:
    kind: GeoErrorKind
    title: str
    message: str


GeoResult = Union[GeoSuccess, GeoError]


@dataclass(frozen=True)
class BoundingBox:
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @property
    def area_deg2(self) -> float:
        return (self.max_lon - self.min_lon) * (self.max_lat - self.min_lat)

    @property
    def center(self) -> tuple[float, float]:
        return ((self.min_lon + self.max_lon) / 2, (self.min_lat + self.max_lat) / 2)

    def to_query(self) -> str:
        return ",".join(repr(value) for value in (self.min_lon, self.min_lat, self.max_lon, self.max_lat))


@dataclass(frozen=True)
class MatchResult:
    distance_meters: float
    matched: bool
    tolerance_meters: float
    source: Coordinate
    target: Coordinate
