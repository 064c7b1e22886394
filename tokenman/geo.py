"""Geospatial helper functions."""

from __future__ import annotations

import math
from decimal import Decimal
from numbers import Real

EARTH_RADIUS_M = 6_371_000.0


def is_finite_number(value) -> bool:
    """True para int/float/Decimal finitos; bool não conta como número."""
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, Real):
        return math.isfinite(value)
    return False


def is_valid_coordinate(lat, lng) -> bool:
    """Return True if (lat, lng) is a well-formed WGS84 coordinate."""
    if not (is_finite_number(lat) and is_finite_number(lng)):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance in metres between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c
