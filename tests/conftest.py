"""Shared fixtures for the check-in service tests."""
import math
from datetime import date

import pytest
from flask_jwt_extended import create_access_token

from qr_checkin import create_app, db
from qr_checkin.models.user import User, UserRole, SchoolClass, ClassEnrollment
from qr_checkin.services import school_location_service

SCHOOL_LAT = 14.5995
SCHOOL_LNG = 120.9842


def point_north_of_school(meters: float) -> dict:
    """Coordinates due north of the school at an exact haversine distance."""
    return {
        'lat': SCHOOL_LAT + math.degrees(meters / 6371000),
        'lng': SCHOOL_LNG
    }


@pytest.fixture
def app():
    """Create test app."""
    school_location_service.invalidate_cache()
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def roster(app):
    """Teacher, admin, outsider teacher, one class and enrolled students."""
    teacher = User(email='teacher@school.edu', name='Teacher One', role=UserRole.TEACHER).save()
    other_teacher = User(email='other@school.edu', name='Teacher Two', role=UserRole.TEACHER).save()
    admin = User(email='admin@school.edu', name='Admin', role=UserRole.ADMIN).save()

    students = [
        User(email=f'student{i}@school.edu', name=f'Student {i}', role=UserRole.STUDENT).save()
        for i in range(3)
    ]
    outsider = User(email='outsider@school.edu', name='Outsider', role=UserRole.STUDENT).save()

    school_class = SchoolClass(name='Physics 101', teacher_id=teacher.id).save()
    for student in students:
        ClassEnrollment(class_id=school_class.id, student_id=student.id).save()

    return {
        'teacher': teacher,
        'other_teacher': other_teacher,
        'admin': admin,
        'students': students,
        'outsider': outsider,
        'class': school_class,
    }


@pytest.fixture
def auth_headers(app):
    """Build bearer headers for a user."""
    def _headers(user):
        token = create_access_token(identity=str(user.id))
        return {'Authorization': f'Bearer {token}'}
    return _headers


@pytest.fixture
def session_date():
    return date(2025, 9, 1)
