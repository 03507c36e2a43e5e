"""Student check-in endpoint."""
from flask import Blueprint, current_app, g, request
from flask_limiter.util import get_remote_address
from qr_checkin import limiter
from qr_checkin.errors import AttendanceError
from qr_checkin.services.checkin_service import CheckInService
from qr_checkin.utils.decorators import student_required
from qr_checkin.utils.helpers import success_response
from qr_checkin.utils.validators import Validator

checkin_bp = Blueprint('checkin', __name__)

@checkin_bp.route('', methods=['POST'])
@limiter.exempt
@student_required
def check_in():
    """Record the calling student as present for the scanned session."""
    data = Validator.require_json(request.get_json(silent=True))
    Validator.validate_required_fields(data, ['token'])
    location = Validator.parse_location(data.get('location'))

    student = g.current_user
    service = CheckInService.from_app()

    try:
        result = service.check_in(
            token=data['token'],
            student_id=student.id,
            location=location,
            client_id=f'{get_remote_address()}|{student.id}'
        )
    except AttendanceError as e:
        current_app.logger.warning(
            'Check-in rejected for student %s: %s', student.id, e.kind
        )
        raise

    return success_response(
        data=result.to_dict(),
        message=result.message,
        success=True,
        already_checked_in=not result.is_new
    )
