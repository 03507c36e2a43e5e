"""Persistent store for QR sessions and their check-in ledger."""
from datetime import date as date_type
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from qr_checkin import db
from qr_checkin.models.attendance import AttendanceRecord
from qr_checkin.models.qr_session import QRCheckIn, QRSession, SessionStatus
from qr_checkin.utils.helpers import utcnow


class SessionStore:
    """Single source of truth for session state.

    Every mutation is a conditional write at the storage layer: ending a
    session is one ``UPDATE ... WHERE status = ACTIVE`` and adding a student
    to the ledger relies on the ``(session_id, student_id)`` unique
    constraint, never on a read-modify-write in Python.
    """

    def create(
        self,
        class_id: int,
        teacher_id: int,
        date: date_type,
        start_time: str,
        end_time: str,
        require_location: bool = True
    ) -> QRSession:
        session = QRSession(
            class_id=class_id,
            teacher_id=teacher_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
            require_location=require_location,
            status=SessionStatus.ACTIVE
        )
        db.session.add(session)
        db.session.commit()
        return session

    def get(self, session_id: str, lock: bool = False) -> Optional[QRSession]:
        """Look up a session.

        ``lock=True`` takes a shared row lock (``FOR SHARE``) so that a
        concurrent :meth:`expire` waits until the caller's transaction ends.
        """
        if not session_id:
            return None
        query = select(QRSession).where(QRSession.id == session_id)
        if lock:
            query = query.with_for_update(read=True)
        return db.session.scalars(query).first()

    def expire(self, session_id: str) -> bool:
        """Move an active session to EXPIRED. Returns False if it was not active."""
        result = db.session.execute(
            update(QRSession)
            .where(QRSession.id == session_id, QRSession.status == SessionStatus.ACTIVE)
            .values(status=SessionStatus.EXPIRED, ended_at=utcnow(), updated_at=utcnow())
            .execution_options(synchronize_session='fetch')
        )
        db.session.commit()
        return result.rowcount > 0

    def get_active_for_class(self, class_id: int) -> Optional[QRSession]:
        return db.session.scalars(
            select(QRSession)
            .where(QRSession.class_id == class_id, QRSession.status == SessionStatus.ACTIVE)
            .order_by(QRSession.created_at.desc())
            .limit(1)
        ).first()

    def list_for_teacher(self, teacher_id: Optional[int] = None, class_id: Optional[int] = None,
                         active_only: bool = False) -> List[QRSession]:
        query = select(QRSession)
        if teacher_id is not None:
            query = query.where(QRSession.teacher_id == teacher_id)
        if class_id is not None:
            query = query.where(QRSession.class_id == class_id)
        if active_only:
            query = query.where(QRSession.status == SessionStatus.ACTIVE)
        return list(db.session.scalars(query.order_by(QRSession.created_at.desc())))

    def has_checked_in(self, session_id: str, student_id: int) -> bool:
        return db.session.scalars(
            select(QRCheckIn.id).where(
                QRCheckIn.session_id == session_id,
                QRCheckIn.student_id == student_id
            ).limit(1)
        ).first() is not None

    def count_check_ins(self, session_id: str) -> int:
        return db.session.scalar(
            select(func.count(QRCheckIn.id)).where(QRCheckIn.session_id == session_id)
        )

    def checked_in_students(self, session_id: str) -> set:
        return set(db.session.scalars(
            select(QRCheckIn.student_id).where(QRCheckIn.session_id == session_id)
        ))

    def list_check_ins(self, session_id: str) -> List[QRCheckIn]:
        return list(db.session.scalars(
            select(QRCheckIn)
            .where(QRCheckIn.session_id == session_id)
            .order_by(QRCheckIn.checked_in_at, QRCheckIn.id)
        ))

    def add_check_in(
        self,
        session: QRSession,
        student_id: int,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        location_verified: bool = False
    ) -> bool:
        """Insert the student into the ledger if absent.

        Returns True when this call added the student, False when the unique
        constraint shows they were already present. A new membership also
        marks the student present for the class on the session date.
        """
        check_in = QRCheckIn(
            session_id=session.id,
            student_id=student_id,
            latitude=latitude,
            longitude=longitude,
            location_verified=location_verified
        )
        db.session.add(check_in)
        try:
            db.session.flush()
        except IntegrityError:
            db.session.rollback()
            return False

        self._mark_present(student_id, session.class_id, session.date)
        db.session.commit()
        return True

    def _find_attendance(self, student_id: int, class_id: int, day: date_type) -> Optional[AttendanceRecord]:
        return db.session.scalars(
            select(AttendanceRecord).where(
                AttendanceRecord.student_id == student_id,
                AttendanceRecord.class_id == class_id,
                AttendanceRecord.date == day
            )
        ).first()

    def _mark_present(self, student_id: int, class_id: int, day: date_type) -> None:
        record = self._find_attendance(student_id, class_id, day)

        if record is None:
            # Two sessions of the class on one day may race to create the row
            try:
                with db.session.begin_nested():
                    db.session.add(AttendanceRecord(
                        student_id=student_id,
                        class_id=class_id,
                        date=day,
                        status='present',
                        verification_method='qr'
                    ))
                return
            except IntegrityError:
                record = self._find_attendance(student_id, class_id, day)

        record.status = 'present'
        record.verification_method = 'qr'
