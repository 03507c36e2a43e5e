"""User and class-roster models used for authorization lookups."""
from enum import Enum
from qr_checkin import db
from qr_checkin.models.base import BaseModel

class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'student'
    TEACHER = 'teacher'
    ADMIN = 'admin'

class User(BaseModel):
    """Identity record mirrored from the external identity provider."""

    __tablename__ = 'users'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def is_teacher(self) -> bool:
        """Check if user can run attendance sessions."""
        return self.role in [UserRole.TEACHER, UserRole.ADMIN]

    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT

    def __repr__(self) -> str:
        return f'<User {self.email}>'

class SchoolClass(BaseModel):
    """A class taught by one teacher."""

    __tablename__ = 'classes'

    name = db.Column(db.String(255), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    teacher = db.relationship('User', foreign_keys=[teacher_id])

class ClassEnrollment(BaseModel):
    """Student membership in a class."""

    __tablename__ = 'class_students'
    __table_args__ = (
        db.UniqueConstraint('class_id', 'student_id', name='uq_class_student'),
    )

    class_id = db.Column(db.Integer, db.ForeignKey('classes.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
