"""Error taxonomy for the check-in protocol.

Each error carries a ``kind`` (stable machine-readable name), the HTTP status
it maps to and the message shown to the client. Messages are deliberately
generic where detail would help an attacker: token failures never say which
check failed and geofence failures never include distances.
"""


class AttendanceError(Exception):
    """Base class for errors surfaced to API clients.

    ``kind`` names the exact failure for server logs. ``public_kind`` is what
    the client sees and defaults to ``kind``.
    """

    kind = 'error'
    public_kind = None
    status_code = 400
    default_message = 'Request could not be processed'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def client_kind(self) -> str:
        return self.public_kind or self.kind


class ValidationError(AttendanceError):
    kind = 'validation_error'
    status_code = 400
    default_message = 'Invalid request data'


class Forbidden(AttendanceError):
    kind = 'forbidden'
    status_code = 403
    default_message = 'You do not have access to this resource'


class NotFound(AttendanceError):
    kind = 'not_found'
    status_code = 404
    default_message = 'Resource not found'


class Throttled(AttendanceError):
    kind = 'throttled'
    status_code = 429
    default_message = 'Too many attempts. Please wait a moment and try again.'


class InvalidToken(AttendanceError):
    kind = 'invalid_token'
    public_kind = 'invalid_token'
    status_code = 400
    default_message = 'Invalid or expired code'


class InvalidSignature(InvalidToken):
    kind = 'invalid_signature'


class TokenExpired(InvalidToken):
    kind = 'token_expired'


class SessionNotFound(AttendanceError):
    kind = 'session_not_found'
    status_code = 404
    default_message = 'Attendance session not found'


class SessionExpired(AttendanceError):
    kind = 'session_expired'
    status_code = 410
    default_message = 'This attendance session has ended'


class NotEnrolled(AttendanceError):
    kind = 'not_enrolled'
    status_code = 403
    default_message = 'You are not enrolled in this class'


class LocationRequired(AttendanceError):
    kind = 'location_required'
    status_code = 400
    default_message = 'Location verification required. Please enable location services.'


class OutOfRange(AttendanceError):
    kind = 'out_of_range'
    status_code = 403
    default_message = 'You must be on the school grounds to check in'


class ConfigurationError(AttendanceError):
    kind = 'configuration_error'
    status_code = 500
    default_message = 'Server configuration error'
