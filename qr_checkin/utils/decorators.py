"""Custom decorators for authorization and validation."""
from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from qr_checkin import db
from qr_checkin.models.user import User
from qr_checkin.utils.helpers import error_response

def _load_current_user():
    """Resolve the JWT identity to an active user, or None."""
    identity = get_jwt_identity()
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None

    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user

def login_required(f):
    """Decorator to require any authenticated, active user."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user = _load_current_user()

        if not user:
            return error_response("User not found", 401, kind='unauthorized')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function

def teacher_required(f):
    """Decorator to require teacher role or higher."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user = _load_current_user()

        if not user:
            return error_response("User not found", 401, kind='unauthorized')

        if not user.is_teacher():
            return error_response("Teacher access required", 403, kind='forbidden')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function

def student_required(f):
    """Decorator to require student role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user = _load_current_user()

        if not user:
            return error_response("User not found", 401, kind='unauthorized')

        if not user.is_student():
            return error_response("Student access required", 403, kind='forbidden')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function

def admin_required(f):
    """Decorator to require admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        user = _load_current_user()

        if not user:
            return error_response("User not found", 401, kind='unauthorized')

        if not user.is_admin():
            return error_response("Admin access required", 403, kind='forbidden')

        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function
