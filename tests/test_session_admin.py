"""Test session lifecycle and teacher authorization."""
import pytest

from qr_checkin.errors import Forbidden, NotFound, SessionExpired, ValidationError
from qr_checkin.models.qr_session import SessionStatus
from qr_checkin.services.session_admin_service import SessionAdminService


@pytest.fixture
def admin_service(app):
    return SessionAdminService.from_app(app)


@pytest.fixture
def session(admin_service, roster, session_date):
    return admin_service.create_session(
        caller=roster['teacher'],
        class_id=roster['class'].id,
        date=session_date.isoformat(),
        start_time='09:00',
        end_time='10:00',
        require_location=True
    )


def test_create_session_is_active(session, roster):
    """Test a new session starts ACTIVE with an empty ledger."""
    assert session.status == SessionStatus.ACTIVE
    assert session.teacher_id == roster['teacher'].id
    assert session.check_ins.count() == 0
    assert len(session.id) == 36


def test_admin_creates_session_owned_by_class_teacher(admin_service, roster, session_date):
    """Test admins may start sessions and ownership stays with the teacher."""
    session = admin_service.create_session(
        caller=roster['admin'],
        class_id=roster['class'].id,
        date=session_date,
        start_time='11:00',
        end_time='12:00'
    )
    assert session.teacher_id == roster['teacher'].id


def test_other_teacher_cannot_create(admin_service, roster, session_date):
    """Test teachers can only start sessions for their own classes."""
    with pytest.raises(Forbidden):
        admin_service.create_session(
            caller=roster['other_teacher'],
            class_id=roster['class'].id,
            date=session_date,
            start_time='09:00',
            end_time='10:00'
        )


def test_create_for_missing_class(admin_service, roster, session_date):
    """Test unknown classes are reported as not found."""
    with pytest.raises(NotFound):
        admin_service.create_session(
            caller=roster['teacher'],
            class_id=9999,
            date=session_date,
            start_time='09:00',
            end_time='10:00'
        )


@pytest.mark.parametrize('date, start, end', [
    ('01/09/2025', '09:00', '10:00'),
    ('2025-09-01', '9am', '10:00'),
    ('2025-09-01', '10:00', '09:00'),
    ('2025-09-01', '24:00', '25:00'),
])
def test_create_validates_schedule(admin_service, roster, date, start, end):
    """Test schedule fields are validated."""
    with pytest.raises(ValidationError):
        admin_service.create_session(
            caller=roster['teacher'],
            class_id=roster['class'].id,
            date=date,
            start_time=start,
            end_time=end
        )


def test_end_session_expires(admin_service, session, roster):
    """Test ending moves the session to EXPIRED."""
    ended = admin_service.end_session(session.id, roster['teacher'])
    assert ended.status == SessionStatus.EXPIRED
    assert ended.ended_at is not None


def test_end_session_is_idempotent(admin_service, session, roster):
    """Test ending twice succeeds and keeps the first end time."""
    first = admin_service.end_session(session.id, roster['teacher'])
    ended_at = first.ended_at

    second = admin_service.end_session(session.id, roster['admin'])
    assert second.status == SessionStatus.EXPIRED
    assert second.ended_at == ended_at


def test_end_missing_session(admin_service, roster):
    """Test ending an unknown session is not found."""
    with pytest.raises(NotFound):
        admin_service.end_session('missing', roster['teacher'])


def test_end_by_non_owner_forbidden(admin_service, session, roster):
    """Test another teacher cannot end the session."""
    with pytest.raises(Forbidden):
        admin_service.end_session(session.id, roster['other_teacher'])

    assert session.status == SessionStatus.ACTIVE


def test_issue_token_for_owner_and_admin(admin_service, session, roster):
    """Test owner and admin can mint tokens that verify to the session."""
    for caller in (roster['teacher'], roster['admin']):
        token = admin_service.issue_token(session.id, caller)
        assert admin_service.codec.verify(token).session_id == session.id


def test_issue_token_checks(admin_service, session, roster):
    """Test token minting enforces existence, ownership and status."""
    with pytest.raises(NotFound):
        admin_service.issue_token('missing', roster['teacher'])

    with pytest.raises(Forbidden):
        admin_service.issue_token(session.id, roster['other_teacher'])

    admin_service.end_session(session.id, roster['teacher'])
    with pytest.raises(SessionExpired):
        admin_service.issue_token(session.id, roster['teacher'])


def test_list_and_active_lookup(admin_service, session, roster):
    """Test teachers see their own sessions and the active one per class."""
    assert [s.id for s in admin_service.list_sessions(roster['teacher'])] == [session.id]
    assert admin_service.list_sessions(roster['other_teacher']) == []
    assert len(admin_service.list_sessions(roster['admin'])) == 1

    assert admin_service.get_active_session(roster['teacher'], roster['class'].id).id == session.id

    admin_service.end_session(session.id, roster['teacher'])
    assert admin_service.get_active_session(roster['teacher'], roster['class'].id) is None
    assert admin_service.list_sessions(roster['teacher'], active_only=True) == []


def test_session_view_lists_check_ins(admin_service, session, roster):
    """Test the session view includes the ledger."""
    view = admin_service.get_session_view(session.id, roster['teacher'])
    assert view['status'] == 'active'
    assert view['checked_in_count'] == 0
    assert view['check_ins'] == []
    assert view['class_name'] == 'Physics 101'
