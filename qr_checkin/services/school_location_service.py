"""School location settings with a short-lived read cache."""
import threading
import time
from typing import Optional

from flask import current_app

from qr_checkin import db
from qr_checkin.models.settings import SchoolSettings
from qr_checkin.services.geofence_service import SchoolLocation

_cache_lock = threading.Lock()
_cached_location: Optional[SchoolLocation] = None
_cached_at = 0.0


def invalidate_cache() -> None:
    global _cached_location, _cached_at
    with _cache_lock:
        _cached_location = None
        _cached_at = 0.0


class SchoolLocationService:
    """Read and update the singleton school geofence."""

    def __init__(self, config):
        self.config = config

    @classmethod
    def from_app(cls, app=None) -> 'SchoolLocationService':
        return cls((app or current_app).config)

    def _build(self, **fields) -> SchoolLocation:
        return SchoolLocation(
            min_radius=self.config.get('MIN_RADIUS_METERS', 10),
            max_radius=self.config.get('MAX_RADIUS_METERS', 10000),
            **fields
        )

    def _default_location(self) -> SchoolLocation:
        return self._build(
            latitude=self.config['SCHOOL_LATITUDE'],
            longitude=self.config['SCHOOL_LONGITUDE'],
            radius_meters=self.config['SCHOOL_RADIUS_METERS'],
            allow_out_of_range=self.config.get('SCHOOL_ALLOW_OUT_OF_RANGE', False),
            name=self.config.get('SCHOOL_NAME')
        )

    def load_location(self) -> SchoolLocation:
        """Read the stored location, falling back to configured defaults."""
        settings = db.session.scalars(
            db.select(SchoolSettings).order_by(SchoolSettings.id).limit(1)
        ).first()
        if settings is None:
            return self._default_location()

        return self._build(
            latitude=settings.latitude,
            longitude=settings.longitude,
            radius_meters=settings.radius_meters,
            allow_out_of_range=settings.allow_out_of_range,
            name=settings.name
        )

    def get_location(self) -> SchoolLocation:
        global _cached_location, _cached_at
        ttl = self.config.get('SCHOOL_LOCATION_CACHE_TTL', 0)

        with _cache_lock:
            if _cached_location is not None and time.monotonic() - _cached_at < ttl:
                return _cached_location

        location = self.load_location()
        if ttl > 0:
            with _cache_lock:
                _cached_location = location
                _cached_at = time.monotonic()
        return location

    def update_location(
        self,
        latitude: float,
        longitude: float,
        radius_meters: float,
        allow_out_of_range: bool = False,
        name: str = None,
        updated_by: int = None
    ) -> SchoolLocation:
        """Validate and store a new geofence (admin path)."""
        current = self.load_location()
        location = self._build(
            latitude=latitude,
            longitude=longitude,
            radius_meters=radius_meters,
            allow_out_of_range=bool(allow_out_of_range),
            name=name if name is not None else current.name
        )

        settings = db.session.scalars(
            db.select(SchoolSettings).order_by(SchoolSettings.id).limit(1)
        ).first()
        if settings is None:
            settings = SchoolSettings()
            db.session.add(settings)

        settings.name = location.name
        settings.latitude = location.latitude
        settings.longitude = location.longitude
        settings.radius_meters = location.radius_meters
        settings.allow_out_of_range = location.allow_out_of_range
        settings.updated_by = updated_by
        db.session.commit()

        invalidate_cache()
        current_app.logger.info(
            'School location updated by %s: radius=%.0fm allow_out_of_range=%s',
            updated_by, location.radius_meters, location.allow_out_of_range
        )
        return location
