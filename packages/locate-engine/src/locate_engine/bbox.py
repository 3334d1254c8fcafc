"""Bounding-box parsing and validation for map-data requests.

The upstream map API only serves small areas, so every box is checked against a
conservative area limit before any network call is made.
"""

from __future__ import annotations

import math

from locate_engine.errors import BBoxFormatError, BBoxRejection, BBoxValidationError, InvalidZoomError
from locate_engine.models import BoundingBox

MAX_BBOX_AREA_DEG2 = 0.25
MAX_ZOOM = 30


def parse_bbox(raw: str) -> tuple[float, float, float, float]:
    if not isinstance(raw, str):
        raise BBoxFormatError(
            "Invalid bbox format. Expected 4 comma-separated numbers: min_lon,min_lat,max_lon,max_lat"
        )
    parts = [part.strip() for part in raw.split(",")]
    parts = [part for part in parts if part]
    if len(parts) != 4:
        raise BBoxFormatError(
            "Invalid bbox format. Expected 4 comma-separated numbers: min_lon,min_lat,max_lon,max_lat"
        )
    # float() also takes digit separators such as "1_0"; those are not bbox numbers.
    if any("_" in part for part in parts):
        raise BBoxFormatError(
            "Invalid bbox format. Expected 4 comma-separated numbers: min_lon,min_lat,max_lon,max_lat"
        )
    try:
        numbers = [float(part) for part in parts]
    except ValueError as exc:
        raise BBoxFormatError(
            "Invalid bbox format. Expected 4 comma-separated numbers: min_lon,min_lat,max_lon,max_lat"
        ) from exc
    if not all(math.isfinite(number) for number in numbers):
        raise BBoxFormatError(
            "Invalid bbox format. Expected 4 comma-separated numbers: min_lon,min_lat,max_lon,max_lat"
        )
    min_lon, min_lat, max_lon, max_lat = numbers
    return min_lon, min_lat, max_lon, max_lat


def check_bbox(bbox: BoundingBox) -> BoundingBox:
    # First failing check wins.
    if not (bbox.min_lon < bbox.max_lon and bbox.min_lat < bbox.max_lat):
        raise BBoxValidationError(
            BBoxRejection.ORDERING,
            "Invalid bbox: expected min_lon < max_lon and min_lat < max_lat",
        )
    if bbox.min_lon < -180 or bbox.max_lon > 180:
        raise BBoxValidationError(
            BBoxRejection.LONGITUDE_RANGE,
            "Longitude values must be within [-180, 180]",
        )
    if bbox.min_lat < -90 or bbox.max_lat > 90:
        raise BBoxValidationError(
            BBoxRejection.LATITUDE_RANGE,
            "Latitude values must be within [-90, 90]",
        )
    if bbox.area_deg2 > MAX_BBOX_AREA_DEG2:
        raise BBoxValidationError(
            BBoxRejection.AREA_TOO_LARGE,
            f"Bounding box too large. Reduce area to <= {MAX_BBOX_AREA_DEG2} square degrees.",
        )
    return bbox


def validate_bbox(raw: str) -> BoundingBox:
    min_lon, min_lat, max_lon, max_lat = parse_bbox(raw)
    return check_bbox(BoundingBox(min_lon=min_lon, min_lat=min_lat, max_lon=max_lon, max_lat=max_lat))


def parse_zoom(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError as exc:
        raise InvalidZoomError("Invalid zoom: must be a non-negative integer") from exc
    if not math.isfinite(value) or value != int(value):
        raise InvalidZoomError("Invalid zoom: must be a non-negative integer")
    zoom = int(value)
    if zoom < 0:
        raise InvalidZoomError("Invalid zoom: must be a non-negative integer")
    return zoom


def shrink_bbox(bbox: BoundingBox, zoom: int) -> BoundingBox:
    """Shrink ``bbox`` around its centre by ``2**zoom`` in each dimension."""
    if isinstance(zoom, bool) or not isinstance(zoom, int) or zoom < 0:
        raise InvalidZoomError("Invalid zoom: must be a non-negative integer")
    if zoom > MAX_ZOOM:
        raise InvalidZoomError(f"Invalid zoom: must be <= {MAX_ZOOM}")
    if zoom == 0:
        return bbox
    factor = 2**zoom
    center_lon, center_lat = bbox.center
    half_width = (bbox.max_lon - bbox.min_lon) / 2 / factor
    half_height = (bbox.max_lat - bbox.min_lat) / 2 / factor
    return BoundingBox(
        min_lon=center_lon - half_width,
        min_lat=center_lat - half_height,
        max_lon=center_lon + half_width,
        max_lat=center_lat + half_height,
    )
