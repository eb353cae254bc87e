# geoattend/core/geo.py
import math

from geoattend.core.errors import ErrorKind, InvalidInput

EARTH_RADIUS_METERS = 6371000


def validate_coordinates(latitude, longitude):
    for name, value, bound in (("latitude", latitude, 90.0), ("longitude", longitude, 180.0)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidInput(ErrorKind.INVALID_COORDINATES, f"{name} must be a number")
        if not math.isfinite(value) or abs(value) > bound:
            raise InvalidInput(
                ErrorKind.INVALID_COORDINATES,
                f"{name} must be between -{bound:g} and {bound:g}, got {value}",
            )


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points using the Haversine formula."""
    validate_coordinates(lat1, lon1)
    validate_coordinates(lat2, lon2)

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = (math.sin(dphi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2)
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_METERS * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def within_radius(distance: float, allowed_radius: float) -> bool:
    # inclusive boundary
    return distance <= allowed_radius
