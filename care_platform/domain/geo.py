"""
Geographic Helpers

Great-circle distance and the approximate locality gazetteer used when a
record carries an address but no coordinates.
"""

import math
from typing import Optional

from .models import GeoPoint

EARTH_RADIUS_MILES = 3959.0

# Locality keyword -> approximate centroid. Checked in order, most specific first.
LOCALITY_GAZETTEER: tuple[tuple[str, GeoPoint], ...] = (
    ("beacon hill", GeoPoint(latitude=42.3584, longitude=-71.0598)),
    ("beacon st", GeoPoint(latitude=42.3584, longitude=-71.0598)),
    ("back bay", GeoPoint(latitude=42.3505, longitude=-71.0743)),
    ("boylston", GeoPoint(latitude=42.3505, longitude=-71.0743)),
    ("south end", GeoPoint(latitude=42.3398, longitude=-71.0621)),
    ("longwood", GeoPoint(latitude=42.3370, longitude=-71.1060)),
    ("cambridge", GeoPoint(latitude=42.3736, longitude=-71.1097)),
    ("brookline", GeoPoint(latitude=42.3467, longitude=-71.1206)),
    ("somerville", GeoPoint(latitude=42.3875, longitude=-71.0995)),
    ("watertown", GeoPoint(latitude=42.3709, longitude=-71.1828)),
    ("newton", GeoPoint(latitude=42.3370, longitude=-71.2092)),
    ("medford", GeoPoint(latitude=42.4184, longitude=-71.1062)),
    ("malden", GeoPoint(latitude=42.4251, longitude=-71.0662)),
    ("quincy", GeoPoint(latitude=42.2529, longitude=-71.0023)),
    ("waltham", GeoPoint(latitude=42.3765, longitude=-71.2356)),
    ("boston", GeoPoint(latitude=42.3601, longitude=-71.0589)),
)

MAJOR_MEDICAL_CENTERS: tuple[tuple[str, GeoPoint], ...] = (
    ("Longwood Medical Area", GeoPoint(latitude=42.3370, longitude=-71.1060)),
    ("Massachusetts General Hospital", GeoPoint(latitude=42.3631, longitude=-71.0686)),
    ("Boston Medical Center", GeoPoint(latitude=42.3349, longitude=-71.0728)),
    ("Mount Auburn Hospital", GeoPoint(latitude=42.3751, longitude=-71.1331)),
)


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in miles using the haversine formula.

    Args:
        lat1: Latitude of first point (degrees)
        lon1: Longitude of first point (degrees)
        lat2: Latitude of second point (degrees)
        lon2: Longitude of second point (degrees)

    Returns:
        Distance in miles
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in miles between two points."""
    return calculate_distance(a.latitude, a.longitude, b.latitude, b.longitude)


def approximate_coordinates(address: Optional[str]) -> Optional[GeoPoint]:
    """
    Approximate a location from locality keywords in an address.

    Returns:
        Locality centroid, or None when no known locality is mentioned
    """
    if not address:
        return None

    address_lower = address.lower()
    for keyword, point in LOCALITY_GAZETTEER:
        if keyword in address_lower:
            return point
    return None


def nearest_medical_center_distance(point: GeoPoint) -> float:
    """Distance in miles from a point to the closest major medical center."""
    return min(distance_between(point, center) for _, center in MAJOR_MEDICAL_CENTERS)
