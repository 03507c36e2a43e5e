"""Teacher-facing session lifecycle operations."""
import re
from datetime import date, datetime
from typing import List, Optional

from flask import current_app

from qr_checkin import db
from qr_checkin.errors import Forbidden, NotFound, SessionExpired, ValidationError
from qr_checkin.models.qr_session import QRSession, SessionStatus
from qr_checkin.models.user import SchoolClass, User
from qr_checkin.services.access_policy import ClassAccessPolicy
from qr_checkin.services.session_store import SessionStore
from qr_checkin.services.token_service import TokenCodec

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def parse_session_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError("Date must use the YYYY-MM-DD format")


def validate_time_range(start_time, end_time) -> None:
    for value in (start_time, end_time):
        if not isinstance(value, str) or not TIME_PATTERN.match(value):
            raise ValidationError("Times must use the HH:MM format")
    if end_time <= start_time:
        raise ValidationError("End time must be after start time")


class SessionAdminService:
    """Create, tokenize and end sessions on behalf of teachers and admins."""

    def __init__(self, codec: TokenCodec, store: SessionStore = None,
                 access_policy: ClassAccessPolicy = None):
        self.codec = codec
        self.store = store or SessionStore()
        self.access_policy = access_policy or ClassAccessPolicy()

    @classmethod
    def from_app(cls, app=None, **overrides) -> 'SessionAdminService':
        app = app or current_app
        options = {'codec': TokenCodec.from_config(app.config)}
        options.update(overrides)
        return cls(**options)

    def _get_owned_session(self, session_id: str, caller: User) -> QRSession:
        session = self.store.get(session_id)
        if session is None:
            raise NotFound("Session not found")
        if not self.access_policy.can_manage_session(caller, session):
            raise Forbidden("You do not own this session")
        return session

    def create_session(
        self,
        caller: User,
        class_id: int,
        date,
        start_time: str,
        end_time: str,
        require_location: bool = True
    ) -> QRSession:
        """Open a session in ACTIVE state. Minting a token is a separate call."""
        session_date = parse_session_date(date)
        validate_time_range(start_time, end_time)

        school_class = db.session.get(SchoolClass, class_id)
        if school_class is None:
            raise NotFound("Class not found")
        if not self.access_policy.can_manage_class(caller, class_id):
            raise Forbidden("You can only start sessions for your own classes")

        session = self.store.create(
            class_id=class_id,
            teacher_id=school_class.teacher_id,
            date=session_date,
            start_time=start_time,
            end_time=end_time,
            require_location=bool(require_location)
        )
        current_app.logger.info(
            'Session %s started for class %s by user %s', session.id, class_id, caller.id
        )
        return session

    def issue_token(self, session_id: str, caller: User) -> str:
        """Mint a fresh token; may be called repeatedly to refresh the code."""
        session = self._get_owned_session(session_id, caller)
        if session.status == SessionStatus.EXPIRED:
            raise SessionExpired()

        token = self.codec.issue(session.id)
        current_app.logger.info('Token issued for session %s by user %s', session.id, caller.id)
        return token

    def end_session(self, session_id: str, caller: User) -> QRSession:
        """Expire a session. Ending an expired session succeeds without change."""
        session = self._get_owned_session(session_id, caller)
        if self.store.expire(session.id):
            current_app.logger.info('Session %s ended by user %s', session_id, caller.id)
        return self.store.get(session_id)

    def get_session_view(self, session_id: str, caller: User) -> dict:
        """Session details with the students checked in so far."""
        session = self._get_owned_session(session_id, caller)
        check_ins = self.store.list_check_ins(session.id)

        data = session.to_dict()
        data['checked_in_count'] = len(check_ins)
        data['check_ins'] = [
            check_in.to_dict(exclude=['created_at', 'updated_at', 'session_id'])
            for check_in in check_ins
        ]
        return data

    def list_sessions(self, caller: User, class_id: Optional[int] = None,
                      active_only: bool = False) -> List[QRSession]:
        if caller.is_admin():
            return self.store.list_for_teacher(class_id=class_id, active_only=active_only)
        if not caller.is_teacher():
            raise Forbidden("Teacher access required")
        return self.store.list_for_teacher(caller.id, class_id=class_id, active_only=active_only)

    def get_active_session(self, caller: User, class_id: int) -> Optional[QRSession]:
        if not self.access_policy.can_manage_class(caller, class_id):
            raise Forbidden("You can only view sessions for your own classes")
        return self.store.get_active_for_class(class_id)
