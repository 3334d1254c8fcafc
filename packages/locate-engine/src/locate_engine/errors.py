from __future__ import annotations

from enum import Enum


class ValidationError(ValueError):
    """Raised for user-correctable input that must never reach an upstream."""


class CoordinateError(ValidationError):
    """Raised when a latitude/longitude pair is out of range or not finite."""


class InvalidToleranceError(ValidationError):
    """Raised when a match tolerance is not a finite positive number."""


class BBoxFormatError(ValidationError):
    """Raised when a bbox string is not four comma-separated finite numbers."""


class BBoxRejection(str, Enum):
    ORDERING = "ORDERING"
    LONGITUDE_RANGE = "LONGITUDE_RANGE"
    LATITUDE_RANGE = "LATITUDE_RANGE"
    AREA_TOO_LARGE = "AREA_TOO_LARGE"


class BBoxValidationError(ValidationError):
    def __init__(self, reason: BBoxRejection, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class InvalidZoomError(ValidationError):
    """Raised when a zoom level is negative, fractional or not finite."""
