"""
Distance calculation using the Haversine formula.

Assumption
----------
Clients usually send a road distance obtained from their maps provider.
When they don't, we fall back to great-circle (Haversine) distance, which
under-estimates road distance but is stable and needs no API keys.

The result is rounded to one decimal place so that the same pair of
points always yields the same value wherever it is computed.

Complexity: O(1) per call.
"""

import math

EARTH_RADIUS_KM = 6_371.0
DEFAULT_AVERAGE_SPEED_KMH = 40.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km**, rounded to 0.1 km."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_KM * c, 1)


def estimate_travel_minutes(
    distance_km: float, average_speed_kmh: float = DEFAULT_AVERAGE_SPEED_KMH
) -> int:
    """Rough door-to-door time in whole minutes at a constant speed."""
    if average_speed_kmh <= 0:
        raise ValueError("average_speed_kmh must be positive")
    return round(distance_km / average_speed_kmh * 60)
