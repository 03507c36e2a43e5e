"""Teacher-facing attendance session endpoints."""
from flask import Blueprint, current_app, g, request
from qr_checkin import limiter
from qr_checkin.services.session_admin_service import SessionAdminService
from qr_checkin.services.token_service import render_qr_image
from qr_checkin.utils.decorators import teacher_required
from qr_checkin.utils.helpers import success_response
from qr_checkin.utils.validators import Validator

sessions_bp = Blueprint('sessions', __name__)

def _session_create_limit():
    return current_app.config['SESSION_CREATE_RATE_LIMIT']

def _token_issue_limit():
    return current_app.config['TOKEN_ISSUE_RATE_LIMIT']

@sessions_bp.route('', methods=['POST'])
@limiter.limit(_session_create_limit)
@teacher_required
def create_session():
    """Start an attendance session for one class meeting."""
    data = Validator.require_json(request.get_json(silent=True))
    Validator.validate_required_fields(data, ['class_id', 'date', 'start_time', 'end_time'])

    session = SessionAdminService.from_app().create_session(
        caller=g.current_user,
        class_id=Validator.parse_int(data['class_id'], 'class_id'),
        date=data['date'],
        start_time=data['start_time'],
        end_time=data['end_time'],
        require_location=Validator.parse_bool(data.get('require_location', True), 'require_location')
    )

    return success_response(
        data=session.to_dict(),
        message="Attendance session started",
        status_code=201
    )

@sessions_bp.route('', methods=['GET'])
@teacher_required
def list_sessions():
    """List the caller's sessions, optionally only active ones for a class."""
    class_id = request.args.get('class_id')
    active_only = Validator.parse_bool(request.args.get('active', 'false'), 'active')

    sessions = SessionAdminService.from_app().list_sessions(
        g.current_user,
        class_id=Validator.parse_int(class_id, 'class_id') if class_id else None,
        active_only=active_only
    )

    return success_response(data=[session.to_dict() for session in sessions])

@sessions_bp.route('/active', methods=['GET'])
@teacher_required
def get_active_session():
    """The class's running session, if any, so a teacher can resume it."""
    Validator.validate_required_fields(request.args, ['class_id'])

    session = SessionAdminService.from_app().get_active_session(
        g.current_user, Validator.parse_int(request.args['class_id'], 'class_id')
    )
    return success_response(data=session.to_dict() if session else None)

@sessions_bp.route('/<session_id>', methods=['GET'])
@teacher_required
def get_session(session_id):
    """Live session view with checked-in students."""
    view = SessionAdminService.from_app().get_session_view(session_id, g.current_user)
    return success_response(data=view)

@sessions_bp.route('/<session_id>/token', methods=['POST'])
@limiter.limit(_token_issue_limit)
@teacher_required
def issue_token(session_id):
    """Mint a fresh signed token for the session's scannable code."""
    token = SessionAdminService.from_app().issue_token(session_id, g.current_user)

    fields = {
        'token': token,
        'expires_in': current_app.config['QR_TOKEN_TTL_SECONDS']
    }
    if Validator.parse_bool(request.args.get('include_image', 'false'), 'include_image'):
        fields['qr_image'] = render_qr_image(token)

    return success_response(message="Token issued", **fields)

@sessions_bp.route('/<session_id>/end', methods=['POST'])
@teacher_required
def end_session(session_id):
    """End the session. Repeating the call is harmless."""
    session = SessionAdminService.from_app().end_session(session_id, g.current_user)
    return success_response(
        data=session.to_dict(),
        message="Attendance session ended",
        success=True
    )
