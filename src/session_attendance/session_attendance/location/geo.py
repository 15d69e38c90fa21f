from __future__ import annotations

import math
from typing import Sequence

EARTH_RADIUS_METERS = 6371000.0


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def encode_polygon(ring: Sequence[Sequence[float]]) -> str:
    """GeoJSON ring ``[[lng, lat], ...]`` -> provider format ``lat,lng;lat,lng``."""
    return ";".join(f"{pt[1]},{pt[0]}" for pt in ring)
