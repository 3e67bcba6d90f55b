"""Attendance check-in API endpoints."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from intrack import limiter
from intrack.models.attendance import Attendance
from intrack.services.checkin_service import CheckInService
from intrack.services.qr_service import QRService
from intrack.utils.decorators import get_current_user, student_required
from intrack.utils.errors import CheckInError, CheckInErrorKind
from intrack.utils.helpers import success_response, error_response
from intrack.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)


def _error_reply(error: CheckInError):
    """Map a check-in failure to its JSON envelope."""
    if error.is_idempotent_success:
        return success_response(
            data={'already_checked_in': True, 'attendance': error.attendance.to_dict()},
            message=error.message
        )
    return error_response(error.message, error.status_code, data=error.to_dict())


@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')


@attendance_bp.route('/checkin', methods=['POST'])
@jwt_required()
@student_required
@limiter.limit("30 per minute")
def check_in():
    """Check in to an active visit with a scanned QR code and a GPS fix.

    Accepts either the raw ``token`` or the scanned ``qrData`` payload.
    """
    data = request.get_json(silent=True)
    position = Validator.validate_position(data)

    for key in ('token', 'qrData'):
        if data.get(key) is not None and not isinstance(data[key], str):
            return error_response(f"{key} must be a string", 400)

    token_value, visit_id = data.get('token'), None
    if not token_value and data.get('qrData'):
        is_valid, payload, parse_error = QRService.parse_payload(data['qrData'])
        if not is_valid:
            return _error_reply(CheckInError(
                CheckInErrorKind.TOKEN_NOT_FOUND, parse_error or "Invalid QR code"
            ))
        token_value, visit_id = payload['token'], payload['visit_id']

    if not token_value:
        return error_response("token or qrData is required", 400)

    attendance, error = CheckInService.check_in(
        token_value,
        get_current_user().id,
        position,
        visit_id=visit_id,
        device={
            'user_agent': request.headers.get('User-Agent'),
            'ip_address': request.remote_addr
        }
    )
    if error:
        return _error_reply(error)

    return success_response(
        data={'attendance': attendance.to_dict()},
        message='Attendance recorded successfully',
        status_code=201
    )


@attendance_bp.route('/me', methods=['GET'])
@jwt_required()
@student_required
def my_attendance():
    """The current student's attendance history, newest first."""
    records = (Attendance.query
               .filter_by(student_id=get_current_user().id)
               .order_by(Attendance.check_in_at.desc())
               .all())

    return success_response(data={
        'attendance': [record.to_dict() for record in records],
        'total': len(records)
    })
