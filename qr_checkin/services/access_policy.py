"""Class ownership and enrollment checks."""
from qr_checkin import db
from qr_checkin.models.user import User, SchoolClass, ClassEnrollment
from qr_checkin.models.qr_session import QRSession


class ClassAccessPolicy:
    """Authorization decisions backed by the class roster tables.

    Replace with a client for the school's identity/roster service when the
    roster lives elsewhere; the services only call these three methods.
    """

    def can_manage_class(self, user: User, class_id: int) -> bool:
        if user.is_admin():
            return True
        if not user.is_teacher():
            return False
        school_class = db.session.get(SchoolClass, class_id)
        return school_class is not None and school_class.teacher_id == user.id

    def can_manage_session(self, user: User, session: QRSession) -> bool:
        if user.is_admin():
            return True
        return user.is_teacher() and session.teacher_id == user.id

    def is_enrolled(self, student_id: int, class_id: int) -> bool:
        enrollment = db.session.scalars(
            db.select(ClassEnrollment.id).where(
                ClassEnrollment.class_id == class_id,
                ClassEnrollment.student_id == student_id
            ).limit(1)
        ).first()
        return enrollment is not None
