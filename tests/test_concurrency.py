"""Test concurrent check-in bursts against one session."""
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest

from qr_checkin import create_app, db
from qr_checkin.models.qr_session import QRCheckIn
from qr_checkin.models.user import User, UserRole, SchoolClass, ClassEnrollment
from qr_checkin.services import school_location_service
from qr_checkin.services.checkin_service import CheckInService, CheckInStatus
from qr_checkin.services.geofence_service import DeviceLocation
from qr_checkin.services.session_admin_service import SessionAdminService
from qr_checkin.services.session_store import SessionStore

from conftest import point_north_of_school

CLASS_SIZE = 40


@pytest.fixture
def file_app(tmp_path):
    """App on a file-backed SQLite database so threads get their own connections."""
    school_location_service.invalidate_cache()
    app = create_app('testing', config_overrides={
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'checkins.db'}",
        'SQLALCHEMY_ENGINE_OPTIONS': {'connect_args': {'timeout': 30}},
        'CHECKIN_RATE_LIMIT': 1000,
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def classroom(file_app):
    """A running session, its token and a full class of enrolled students."""
    with file_app.app_context():
        teacher = User(email='teacher@school.edu', name='Teacher', role=UserRole.TEACHER).save()
        school_class = SchoolClass(name='Chemistry', teacher_id=teacher.id).save()

        student_ids = []
        for i in range(CLASS_SIZE):
            student = User(email=f's{i}@school.edu', name=f'Student {i}', role=UserRole.STUDENT).save()
            ClassEnrollment(class_id=school_class.id, student_id=student.id).save()
            student_ids.append(student.id)

        admin_service = SessionAdminService.from_app(file_app)
        session = admin_service.create_session(
            caller=teacher,
            class_id=school_class.id,
            date=date(2025, 9, 1),
            start_time='09:00',
            end_time='10:00',
            require_location=True
        )
        token = admin_service.issue_token(session.id, teacher)
        session_id = session.id
        db.session.remove()

    return {'session_id': session_id, 'token': token, 'student_ids': student_ids}


def _check_in(app, token, student_id, device):
    point = point_north_of_school(50)
    with app.app_context():
        try:
            result = CheckInService.from_app(app).check_in(
                token,
                student_id,
                DeviceLocation(latitude=point['lat'], longitude=point['lng']),
                client_id=f'10.0.0.{device}|{student_id}'
            )
            return result.status
        finally:
            db.session.remove()


def test_concurrent_distinct_students_all_recorded(file_app, classroom):
    """Test a whole class scanning at once loses no check-ins."""
    with ThreadPoolExecutor(max_workers=10) as pool:
        statuses = list(pool.map(
            lambda item: _check_in(file_app, classroom['token'], item[1], item[0]),
            enumerate(classroom['student_ids'])
        ))

    assert statuses == [CheckInStatus.CHECKED_IN] * CLASS_SIZE

    with file_app.app_context():
        members = SessionStore().checked_in_students(classroom['session_id'])
        assert members == set(classroom['student_ids'])
        db.session.remove()


def test_concurrent_retries_from_one_student_count_once(file_app, classroom):
    """Test a burst of double taps yields exactly one ledger entry."""
    student_id = classroom['student_ids'][0]

    with ThreadPoolExecutor(max_workers=8) as pool:
        statuses = list(pool.map(
            lambda device: _check_in(file_app, classroom['token'], student_id, device),
            range(8)
        ))

    assert statuses.count(CheckInStatus.CHECKED_IN) == 1
    assert statuses.count(CheckInStatus.ALREADY_CHECKED_IN) == 7

    with file_app.app_context():
        count = db.session.query(QRCheckIn).filter_by(student_id=student_id).count()
        assert count == 1
        db.session.remove()
