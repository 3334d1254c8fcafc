import math

from locate_engine.distance import haversine_distance_meters
from locate_engine.errors import InvalidToleranceError
from locate_engine.models import Coordinate, MatchResult

DEFAULT_TOLERANCE_METERS = 80.0


def match_coordinates(
    source: Coordinate,
    target: Coordinate,
    tolerance_meters: float = DEFAULT_TOLERANCE_METERS,
) -> MatchResult:
    if isinstance(tolerance_meters, bool) or not math.isfinite(tolerance_meters) or tolerance_meters <= 0:
        raise InvalidToleranceError("Invalid tolerance: must be a positive number")
    distance = haversine_distance_meters(source, target)
    return MatchResult(
        distance_meters=distance,
        matched=distance <= tolerance_meters,
        tolerance_meters=float(tolerance_meters),
        source=source,
        target=target,
    )
