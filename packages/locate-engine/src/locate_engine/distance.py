import math

from locate_engine.models import Coordinate

EARTH_RADIUS_METERS = 6_371_000


def haversine_distance_meters(start: Coordinate, end: Coordinate) -> float:
    """Great-circle distance on a spherical Earth.

    Antipodal points and the poles are not special-cased; results there carry the
    usual spherical-model error of up to ~0.5%.
    """
    start_lat = math.radians(start.latitude)
    end_lat = math.radians(end.latitude)
    delta_lat = math.radians(end.latitude - start.latitude)
    delta_lon = math.radians(end.longitude - start.longitude)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(start_lat) * math.cos(end_lat) * math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c
