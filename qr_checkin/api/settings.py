"""School location settings endpoints."""
from flask import Blueprint, g, request
from qr_checkin.services.school_location_service import SchoolLocationService
from qr_checkin.utils.decorators import admin_required, login_required
from qr_checkin.utils.helpers import success_response
from qr_checkin.utils.validators import Validator

settings_bp = Blueprint('settings', __name__)

@settings_bp.route('/school-location', methods=['GET'])
@login_required
def get_school_location():
    """Get the public school geofence."""
    location = SchoolLocationService.from_app().get_location()
    return success_response(data=location.to_dict())

@settings_bp.route('/school-location', methods=['PUT'])
@admin_required
def update_school_location():
    """Update the school geofence (admin only)."""
    data = Validator.require_json(request.get_json(silent=True))
    Validator.validate_required_fields(data, ['latitude', 'longitude', 'radius_meters'])

    location = SchoolLocationService.from_app().update_location(
        latitude=data['latitude'],
        longitude=data['longitude'],
        radius_meters=data['radius_meters'],
        allow_out_of_range=Validator.parse_bool(
            data.get('allow_out_of_range', False), 'allow_out_of_range'
        ),
        name=data.get('name'),
        updated_by=g.current_user.id
    )

    return success_response(data=location.to_dict(), message="School location updated")
