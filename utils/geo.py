"""Great-circle distance and geohash helpers."""

import math

from config.constants import (
    EARTH_RADIUS_M,
    GEOHASH_BASE32,
    GEOHASH_DEFAULT_PRECISION,
    GEOHASH_RANGE_SENTINEL,
)


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two (lat, lon) points in decimal degrees.

    Spherical Earth approximation; error is negligible at campus scale.
    Inputs are not range-checked.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def encode_geohash(latitude: float, longitude: float, precision: int = GEOHASH_DEFAULT_PRECISION) -> str:
    """Encode a coordinate as a base-32 geohash of `precision` characters."""
    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    chars: list[str] = []
    idx = 0
    bit = 0
    even_bit = True  # even bits refine longitude

    while len(chars) < precision:
        if even_bit:
            mid = (lon_range[0] + lon_range[1]) / 2
            if longitude >= mid:
                idx = idx * 2 + 1
                lon_range[0] = mid
            else:
                idx = idx * 2
                lon_range[1] = mid
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if latitude >= mid:
                idx = idx * 2 + 1
                lat_range[0] = mid
            else:
                idx = idx * 2
                lat_range[1] = mid
        even_bit = not even_bit
        bit += 1
        if bit == 5:
            chars.append(GEOHASH_BASE32[idx])
            bit = 0
            idx = 0

    return "".join(chars)


def geohash_prefix_range(prefix: str) -> tuple[str, str]:
    """Inclusive (start, end) bounds matching every geohash that starts with `prefix`."""
    return prefix, prefix + GEOHASH_RANGE_SENTINEL
