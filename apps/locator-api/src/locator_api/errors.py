from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class ApiError(Exception):
    code: str
    message: str
    status_code: int
    extra: dict[str, Any] = field(default_factory=dict)
    # Map endpoints answer with a bare ``{"error": ...}`` body.
    envelope: bool = True


class GeocodeErrorKind(str, Enum):
    EMPTY_ADDRESS = "EmptyAddress"
    UPSTREAM_UNAVAILABLE = "UpstreamUnavailable"
    NO_RESULTS = "NoResults"
    MALFORMED_COORDINATES = "MalformedCoordinates"


_GEOCODE_STATUS = {
    GeocodeErrorKind.EMPTY_ADDRESS: 400,
    GeocodeErrorKind.UPSTREAM_UNAVAILABLE: 502,
    GeocodeErrorKind.NO_RESULTS: 404,
    GeocodeErrorKind.MALFORMED_COORDINATES: 502,
}


class GeocodeError(Exception):
    def __init__(self, kind: GeocodeErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def to_api_error(self) -> ApiError:
        return ApiError(
            code=self.kind.value,
            message=self.message,
            status_code=_GEOCODE_STATUS[self.kind],
        )
