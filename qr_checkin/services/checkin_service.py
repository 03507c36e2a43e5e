"""Student check-in pipeline."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from flask import current_app

from qr_checkin.errors import (
    LocationRequired, NotEnrolled, OutOfRange, SessionExpired,
    SessionNotFound, Throttled
)
from qr_checkin.models.qr_session import QRSession, SessionStatus
from qr_checkin.services.access_policy import ClassAccessPolicy
from qr_checkin.services.geofence_service import DeviceLocation, GeofenceEngine
from qr_checkin.services.rate_limiter import RateLimiter
from qr_checkin.services.school_location_service import SchoolLocationService
from qr_checkin.services.session_store import SessionStore
from qr_checkin.services.token_service import TokenCodec

CHECKIN_ENDPOINT = 'checkin'


class CheckInStatus(Enum):
    CHECKED_IN = 'checked_in'
    ALREADY_CHECKED_IN = 'already_checked_in'


@dataclass(frozen=True)
class CheckInResult:
    status: CheckInStatus
    session_id: str
    student_id: int
    checked_in_count: int
    message: str

    @property
    def is_new(self) -> bool:
        return self.status == CheckInStatus.CHECKED_IN

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'session_id': self.session_id,
            'student_id': self.student_id,
            'checked_in_count': self.checked_in_count
        }


class CheckInService:
    """Validate a scanned token and record the student as present.

    Stages run cheapest first and stop at the first failure. Only the final
    ledger insert writes session state, so a rejected request leaves no
    partial check-in behind.
    """

    def __init__(
        self,
        codec: TokenCodec,
        store: SessionStore = None,
        limiter: RateLimiter = None,
        locations: SchoolLocationService = None,
        access_policy: ClassAccessPolicy = None,
        rate_limit: int = 10,
        rate_window_seconds: int = 60
    ):
        self.codec = codec
        self.store = store or SessionStore()
        self.limiter = limiter or RateLimiter()
        self.locations = locations or SchoolLocationService.from_app()
        self.access_policy = access_policy or ClassAccessPolicy()
        self.rate_limit = rate_limit
        self.rate_window_seconds = rate_window_seconds

    @classmethod
    def from_app(cls, app=None, **overrides) -> 'CheckInService':
        app = app or current_app
        options = {
            'codec': TokenCodec.from_config(app.config),
            'locations': SchoolLocationService.from_app(app),
            'rate_limit': app.config['CHECKIN_RATE_LIMIT'],
            'rate_window_seconds': app.config['CHECKIN_RATE_WINDOW_SECONDS']
        }
        options.update(overrides)
        return cls(**options)

    def check_in(
        self,
        token: str,
        student_id: int,
        location: Optional[DeviceLocation] = None,
        client_id: Optional[str] = None
    ) -> CheckInResult:
        identifier = client_id or f'student:{student_id}'
        if not self.limiter.allow(identifier, CHECKIN_ENDPOINT,
                                  self.rate_limit, self.rate_window_seconds):
            raise Throttled()

        claims = self.codec.verify(token)

        session = self.store.get(claims.session_id, lock=True)
        if session is None:
            raise SessionNotFound()
        if session.status == SessionStatus.EXPIRED:
            raise SessionExpired()

        if not self.access_policy.is_enrolled(student_id, session.class_id):
            raise NotEnrolled()

        location_verified = self._check_location(session, location)

        if self.store.has_checked_in(session.id, student_id):
            return self._already_checked_in(session.id, student_id)

        added = self.store.add_check_in(
            session,
            student_id,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            location_verified=location_verified
        )
        if not added:
            return self._already_checked_in(claims.session_id, student_id)

        count = self.store.count_check_ins(claims.session_id)
        current_app.logger.info(
            'Student %s checked in to session %s (%d present)',
            student_id, claims.session_id, count
        )
        return CheckInResult(
            status=CheckInStatus.CHECKED_IN,
            session_id=claims.session_id,
            student_id=student_id,
            checked_in_count=count,
            message='Successfully checked in!'
        )

    def _check_location(self, session: QRSession, location: Optional[DeviceLocation]) -> bool:
        """Enforce the geofence when the session asks for it.

        Returns whether the reported location was confirmed inside the
        radius; the operator override accepts any or no location.
        """
        school = self.locations.get_location()
        engine = GeofenceEngine(school)

        if session.require_location and not school.allow_out_of_range:
            if location is None:
                raise LocationRequired()
            if not engine.is_within_range(location.latitude, location.longitude):
                raise OutOfRange()
            return True

        if location is None:
            return False
        return engine.distance_meters(location.latitude, location.longitude) <= school.radius_meters

    def _already_checked_in(self, session_id: str, student_id: int) -> CheckInResult:
        return CheckInResult(
            status=CheckInStatus.ALREADY_CHECKED_IN,
            session_id=session_id,
            student_id=student_id,
            checked_in_count=self.store.count_check_ins(session_id),
            message='You have already checked in'
        )
