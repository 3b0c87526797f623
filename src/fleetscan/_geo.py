"""Great-circle distance and movement detection."""

from __future__ import annotations

import math

from fleetscan._constants import EARTH_RADIUS_KM


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def has_moved(
    cached: tuple[float, float] | None,
    incoming: tuple[float, float],
    threshold_deg: float,
) -> bool:
    """Whether *incoming* differs meaningfully from the *cached* ``(lat, lon)``.

    A missing cached position always counts as movement.  Otherwise either
    axis must change by strictly more than *threshold_deg*.
    """
    if cached is None:
        return True
    return abs(incoming[0] - cached[0]) > threshold_deg or abs(incoming[1] - cached[1]) > threshold_deg
