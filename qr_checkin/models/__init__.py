"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole, SchoolClass, ClassEnrollment
from .qr_session import QRSession, SessionStatus, QRCheckIn
from .attendance import AttendanceRecord
from .settings import SchoolSettings, RateLimitEntry

__all__ = [
    'BaseModel', 'User', 'UserRole', 'SchoolClass', 'ClassEnrollment',
    'QRSession', 'SessionStatus', 'QRCheckIn', 'AttendanceRecord',
    'SchoolSettings', 'RateLimitEntry'
]
