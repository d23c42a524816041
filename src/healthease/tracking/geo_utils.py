# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules.

import math
import random
from typing import List, Optional, Tuple


EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEG_LAT = 111_300.0


def to_rad(deg: float) -> float:
    return deg * math.pi / 180.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = to_rad(lat2 - lat1)
    d_lon = to_rad(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(to_rad(lat1))
        * math.cos(to_rad(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def blend(lat1: float, lon1: float, lat2: float, lon2: float, t: float) -> Tuple[float, float]:
    """Linear lat/lng blend; t=0 gives point 1, t=1 gives point 2."""
    return lat1 + (lat2 - lat1) * t, lon1 + (lon2 - lon1) * t


def linear_waypoints(
    lat1: float, lon1: float, lat2: float, lon2: float, count: int
) -> List[Tuple[float, float]]:
    """
    Equally spaced points from origin (exclusive) to target (inclusive).

    Lat and lng are interpolated independently, which is only accurate at
    city scale.

    Returns:
        ``count`` (lat, lng) tuples, the last one equal to the target.
    """
    count = max(1, int(count))
    points = [blend(lat1, lon1, lat2, lon2, i / count) for i in range(1, count)]
    points.append((lat2, lon2))
    return points


def random_nearby(
    lat: float, lon: float, meters: float, rng: Optional[random.Random] = None
) -> Tuple[float, float]:
    """
    Uniformly sample a point within ``meters`` of (lat, lon).

    Args:
        lat, lon: Centre in decimal degrees.
        meters:   Sampling radius.
        rng:      Optional random source (tests pass a seeded one).

    Returns:
        (lat, lng) tuple.
    """
    rng = rng or random
    r = meters / METERS_PER_DEG_LAT
    w = r * math.sqrt(rng.random())
    theta = 2 * math.pi * rng.random()
    dx, dy = w * math.cos(theta), w * math.sin(theta)
    return lat + dy, lon + dx / math.cos(to_rad(lat))
