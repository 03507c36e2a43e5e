"""Test CLI commands."""
from qr_checkin import db
from qr_checkin.models.settings import SchoolSettings
from qr_checkin.models.user import User, UserRole
from qr_checkin.services.rate_limiter import RateLimiter


def test_create_user_prints_token(app):
    """Test create-user stores the user and prints an access token."""
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        'create-user', '--email', 'New.Teacher@School.edu', '--name', 'New Teacher', '--role', 'teacher'
    ])

    assert result.exit_code == 0
    assert 'Access token: ' in result.output
    user = db.session.query(User).filter_by(email='new.teacher@school.edu').one()
    assert user.role == UserRole.TEACHER


def test_set_school_location(app):
    """Test set-school-location stores the geofence."""
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        'set-school-location', '--lat', '40.0', '--lng', '-73.0', '--radius', '300'
    ])

    assert result.exit_code == 0
    settings = db.session.query(SchoolSettings).one()
    assert settings.radius_meters == 300
    assert settings.allow_out_of_range is False


def test_set_school_location_rejects_bad_radius(app):
    """Test set-school-location validates the radius."""
    runner = app.test_cli_runner()
    result = runner.invoke(args=[
        'set-school-location', '--lat', '40.0', '--lng', '-73.0', '--radius', '2'
    ])

    assert result.exit_code != 0
    assert db.session.query(SchoolSettings).count() == 0


def test_clean_rate_limits(app):
    """Test clean-rate-limits reports removed entries."""
    RateLimiter().allow('10.0.0.1', 'checkin', limit=5, window_seconds=60)

    runner = app.test_cli_runner()
    result = runner.invoke(args=['clean-rate-limits', '--older-than', '3600'])

    assert result.exit_code == 0
    assert 'Removed 0 rate-limit entries.' in result.output
