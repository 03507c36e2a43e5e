"""Daily attendance record, marked present by a QR check-in."""
from qr_checkin import db
from qr_checkin.models.base import BaseModel

class AttendanceRecord(BaseModel):
    """Attendance record model."""

    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_id', 'date', name='uq_attendance_student_class_date'),
    )

    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), default='present', nullable=False)  # present, absent, late, excused

    # Check-in that produced this record, if any
    verification_method = db.Column(db.String(20), default='qr')  # qr, manual

    def __repr__(self):
        return f'<AttendanceRecord {self.student_id}-{self.class_id}-{self.date}>'
