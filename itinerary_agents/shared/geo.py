"""Great-circle distance helpers."""

import math
from typing import Any

EARTH_RADIUS_KM = 6371.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in kilometres between two lat/lng points."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_between(origin: Any, target: Any) -> float:
    """Haversine distance between two objects exposing ``lat``/``lng``."""
    return haversine(origin.lat, origin.lng, target.lat, target.lng)
