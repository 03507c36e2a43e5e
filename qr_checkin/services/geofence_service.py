"""Geofence checks against the configured school location."""
import math
from dataclasses import dataclass
from typing import Optional

from qr_checkin.errors import ValidationError

EARTH_RADIUS_METERS = 6371000
MIN_RADIUS_METERS = 10
MAX_RADIUS_METERS = 10000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate great-circle distance between two GPS points in meters."""
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (math.sin(delta_lat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) *
         math.sin(delta_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def validate_coordinates(latitude, longitude) -> None:
    """Raise ValidationError unless both values are usable coordinates."""
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
            raise ValidationError("Latitude and longitude must be numbers")
    if not -90 <= latitude <= 90:
        raise ValidationError("Latitude must be between -90 and 90")
    if not -180 <= longitude <= 180:
        raise ValidationError("Longitude must be between -180 and 180")


@dataclass(frozen=True)
class DeviceLocation:
    """Coordinates reported by a student's device."""
    latitude: float
    longitude: float

    def __post_init__(self):
        validate_coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class SchoolLocation:
    """School geofence: a circle around one coordinate."""
    latitude: float
    longitude: float
    radius_meters: float
    allow_out_of_range: bool = False
    name: Optional[str] = None
    min_radius: float = MIN_RADIUS_METERS
    max_radius: float = MAX_RADIUS_METERS

    def __post_init__(self):
        validate_coordinates(self.latitude, self.longitude)
        if isinstance(self.radius_meters, bool) or not isinstance(self.radius_meters, (int, float)):
            raise ValidationError("Radius must be a number")
        if not self.min_radius <= self.radius_meters <= self.max_radius:
            raise ValidationError(
                f"Radius must be between {self.min_radius:.0f} and {self.max_radius:.0f} meters"
            )

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'radius_meters': self.radius_meters,
            'allow_out_of_range': self.allow_out_of_range
        }


class GeofenceEngine:
    """In/out-of-range decisions for one school location."""

    def __init__(self, location: SchoolLocation):
        self.location = location

    def distance_meters(self, user_lat: float, user_lng: float) -> float:
        return haversine_distance(
            user_lat, user_lng,
            self.location.latitude, self.location.longitude
        )

    def is_within_range(self, user_lat: float, user_lng: float) -> bool:
        """Operator override admits everyone; otherwise compare with the radius."""
        if self.location.allow_out_of_range:
            return True
        return self.distance_meters(user_lat, user_lng) <= self.location.radius_meters
