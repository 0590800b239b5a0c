"""
Distance and ETA estimates.

Great-circle (Haversine) distance stands in for a routing engine; the ETA
assumes a flat 30 km/h average, i.e. 0.5 km per minute.

Complexity: O(1) per call.
"""

import math

EARTH_RADIUS_KM = 6_371.0
AVERAGE_KM_PER_MINUTE = 0.5


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def eta_minutes(distance_km: float) -> int:
    """Whole minutes to cover *distance_km*, rounded up."""
    return math.ceil(distance_km / AVERAGE_KM_PER_MINUTE)
