"""Validation utilities for request payloads."""
from typing import Dict, List, Optional

from qr_checkin.errors import ValidationError
from qr_checkin.services.geofence_service import DeviceLocation


class Validator:
    """Validation helper class."""

    @staticmethod
    def require_json(data) -> Dict:
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> None:
        """Raise ValidationError listing every missing field."""
        missing = [field for field in required_fields if data.get(field) in (None, '')]
        if missing:
            raise ValidationError(f"Missing required field(s): {', '.join(missing)}")

    @staticmethod
    def parse_bool(value, field: str) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ('true', 'false', '1', '0'):
            return value.lower() in ('true', '1')
        raise ValidationError(f"{field} must be a boolean")

    @staticmethod
    def parse_int(value, field: str) -> int:
        if isinstance(value, bool):
            raise ValidationError(f"{field} must be an integer")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{field} must be an integer")

    @staticmethod
    def parse_location(value) -> Optional[DeviceLocation]:
        """Accept ``{lat, lng}`` or ``{latitude, longitude}``; None when absent."""
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ValidationError("Location must be an object with lat and lng")

        latitude = value.get('lat', value.get('latitude'))
        longitude = value.get('lng', value.get('longitude'))
        if latitude is None or longitude is None:
            raise ValidationError("Location must include lat and lng")

        return DeviceLocation(latitude=latitude, longitude=longitude)
