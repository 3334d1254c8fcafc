"""Location engine core package."""

from locate_engine.bbox import check_bbox, parse_bbox, parse_zoom, shrink_bbox, validate_bbox
from locate_engine.distance import haversine_distance_meters
from locate_engine.errors import (
    BBoxFormatError,
    BBoxRejection,
    BBoxValidationError,
    CoordinateError,
    InvalidToleranceError,
    InvalidZoomError,
    ValidationError,
)
from locate_engine.matching import DEFAULT_TOLERANCE_METERS, match_coordinates
from locate_engine.models import (
    BoundingBox,
    Coordinate,
    GeoError,
    GeoErrorKind,
    GeoReading,
    GeoResult,
    GeoSuccess,
    MatchResult,
)
from locate_engine.position import geo_result_to_dict, normalize_position

__all__ = [
    "BBoxFormatError",
    "BBoxRejection",
    "BBoxValidationError",
    "BoundingBox",
    "Coordinate",
    "CoordinateError",
    "DEFAULT_TOLERANCE_METERS",
    "GeoError",
    "GeoErrorKind",
    "GeoReading",
    "GeoResult",
    "GeoSuccess",
    "InvalidToleranceError",
    "InvalidZoomError",
    "MatchResult",
    "ValidationError",
    "check_bbox",
    "geo_result_to_dict",
    "haversine_distance_meters",
    "match_coordinates",
    "normalize_position",
    "parse_bbox",
    "parse_zoom",
    "shrink_bbox",
    "validate_bbox",
]
