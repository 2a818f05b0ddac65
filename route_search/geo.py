"""Great-circle distance helpers."""
from __future__ import annotations

import math
from typing import Any, Tuple

EARTH_RADIUS_KM = 6371.0


def _lat_lon(point: Any) -> Tuple[float, float]:
    if isinstance(point, (tuple, list)):
        return float(point[0]), float(point[1])
    return float(point.lat), float(point.lon)


def distance_km(point_a: Any, point_b: Any) -> float:
    """Haversine distance in km between two ``(lat, lon)`` points given in degrees.

    Points may be ``Coordinates`` models (anything with ``lat``/``lon``) or
    plain ``(lat, lon)`` tuples.
    """
    lat1, lon1 = _lat_lon(point_a)
    lat2, lon2 = _lat_lon(point_b)
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    # guard against a creeping past 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
