"""QR attendance session and its check-in ledger."""
import uuid
from enum import Enum
from qr_checkin import db
from qr_checkin.models.base import BaseModel
from qr_checkin.utils.helpers import utcnow

class SessionStatus(Enum):
    """Session lifecycle. EXPIRED is terminal."""
    ACTIVE = 'active'
    EXPIRED = 'expired'

def _new_session_id() -> str:
    return str(uuid.uuid4())

class QRSession(BaseModel):
    """One live attendance window for one class meeting."""

    __tablename__ = 'qr_attendance_sessions'

    id = db.Column(db.String(36), primary_key=True, default=_new_session_id)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # Scheduling metadata, display only
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)

    require_location = db.Column(db.Boolean, default=True, nullable=False)
    status = db.Column(db.Enum(SessionStatus), default=SessionStatus.ACTIVE, nullable=False, index=True)
    ended_at = db.Column(db.DateTime, nullable=True)

    school_class = db.relationship('SchoolClass')
    check_ins = db.relationship('QRCheckIn', backref='session', lazy='dynamic',
                                order_by='QRCheckIn.checked_in_at')

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    def to_dict(self, exclude: list = None) -> dict:
        data = super().to_dict(exclude=exclude)
        data['class_name'] = self.school_class.name if self.school_class else None
        return data

class QRCheckIn(BaseModel):
    """Membership of one student in a session's checked-in set."""

    __tablename__ = 'qr_checkins'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'student_id', name='uq_checkin_session_student'),
    )

    session_id = db.Column(db.String(36), db.ForeignKey('qr_attendance_sessions.id'),
                           nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    checked_in_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    # Location reported by the device, if any
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    location_verified = db.Column(db.Boolean, default=False, nullable=False)

    student = db.relationship('User')

    def to_dict(self, exclude: list = None) -> dict:
        data = super().to_dict(exclude=exclude)
        data['student_name'] = self.student.name if self.student else None
        return data

    def __repr__(self):
        return f'<QRCheckIn {self.session_id}-{self.student_id}>'
