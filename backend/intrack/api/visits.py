"""Industrial visit API endpoints."""
from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from intrack import db, limiter
from intrack.models.attendance import Attendance
from intrack.models.visit import Visit
from intrack.models.user import User, UserRole
from intrack.services.visit_service import VisitService
from intrack.services.rotation_service import RotationService
from intrack.services.checkin_service import CheckInService
from intrack.services.lifecycle_service import VisitStatus
from intrack.services.qr_service import QRService
from intrack.utils.decorators import get_current_user, student_required, active_user_required
from intrack.utils.helpers import success_response, error_response, utcnow
from intrack.utils.validators import Validator

visits_bp = Blueprint('visits', __name__)


def _load_visit(visit_id):
    """Fetch a visit and check the current user may see it."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')
    user = get_current_user()
    if not user.can_view_all_visits() and visit.owner_id != user.id:
        return None, error_response("Access denied to this visit", 403)
    return visit, None


def _require_owner(visit, allow_admin=True):
    user = get_current_user()
    if visit.owner_id == user.id or (allow_admin and user.is_admin()):
        return None
    return error_response("Access denied to this visit", 403)


@visits_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Visit service is running')


@visits_bp.route('', methods=['POST'])
@jwt_required()
@student_required
def create_visit():
    """Create a visit and its first QR code."""
    now = utcnow()
    fields = Validator.validate_visit_payload(request.get_json(silent=True), today=now)

    visit, token = VisitService.create_visit(get_current_user().id, fields, now=now)

    return success_response(
        data={
            'visit': visit.to_dict(now=now),
            'qr_code': QRService.qr_response(token, now=now)
        },
        message='Industrial visit created successfully',
        status_code=201
    )


@visits_bp.route('', methods=['GET'])
@jwt_required()
@active_user_required
def list_visits():
    """List visits visible to the current user."""
    status = request.args.get('status')
    if status:
        try:
            status = VisitStatus(status.upper())
        except ValueError:
            return error_response("status must be one of PENDING, ACTIVE, COMPLETED", 400)

    page = request.args.get('page', 1, type=int)
    limit = min(
        request.args.get('limit', current_app.config['DEFAULT_PAGE_SIZE'], type=int),
        current_app.config['MAX_PAGE_SIZE']
    )

    data = VisitService.list_visits(
        get_current_user(),
        status=status or None,
        company_name=request.args.get('companyName'),
        page=max(page, 1),
        limit=max(limit, 1)
    )
    return success_response(data=data)


@visits_bp.route('/<int:visit_id>', methods=['GET'])
@jwt_required()
@active_user_required
def get_visit(visit_id):
    """Get a specific visit."""
    visit, denied = _load_visit(visit_id)
    if denied:
        return denied

    return success_response(data={'visit': visit.to_dict()})


@visits_bp.route('/<int:visit_id>', methods=['PUT'])
@jwt_required()
@student_required
def update_visit(visit_id):
    """Update a visit (owner only, not once completed)."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')
    denied = _require_owner(visit, allow_admin=False)
    if denied:
        return denied

    fields = Validator.validate_visit_payload(request.get_json(silent=True), partial=True)
    visit, error = VisitService.update_visit(visit, fields)
    if error:
        return error_response(error.message, error.status_code)

    return success_response(data={'visit': visit.to_dict()}, message='Visit updated successfully')


@visits_bp.route('/<int:visit_id>', methods=['DELETE'])
@jwt_required()
@student_required
def delete_visit(visit_id):
    """Delete a visit (owner only, while pending)."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')
    denied = _require_owner(visit, allow_admin=False)
    if denied:
        return denied

    error = VisitService.delete_visit(visit)
    if error:
        return error_response(error.message, error.status_code)

    return success_response(message='Visit deleted successfully')


@visits_bp.route('/<int:visit_id>/regenerate-qr', methods=['POST'])
@jwt_required()
@active_user_required
@limiter.limit("30 per hour")
def regenerate_qr(visit_id):
    """Rotate the QR token, invalidating the previous one."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')
    denied = _require_owner(visit)
    if denied:
        return denied

    now = utcnow()
    token = RotationService.rotate(visit, now=now)

    return success_response(
        data={
            'qr_code': QRService.qr_response(token, now=now),
            'regeneration_count': visit.regeneration_count
        },
        message='QR code regenerated successfully'
    )


@visits_bp.route('/<int:visit_id>/qr', methods=['GET'])
@jwt_required()
@active_user_required
def current_qr(visit_id):
    """Current QR code with refreshed display metadata; the token is unchanged."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')
    denied = _require_owner(visit)
    if denied:
        return denied

    now = utcnow()
    token = RotationService.refresh_display(visit, now=now)
    if token is None:
        return error_response("No active QR code, please regenerate", 404)

    return success_response(data={'qr_code': QRService.qr_response(token, refreshed_at=now, now=now)})


@visits_bp.route('/<int:visit_id>/attendance', methods=['GET'])
@jwt_required()
@active_user_required
def visit_attendance(visit_id):
    """Attendance list for a visit."""
    visit, denied = _load_visit(visit_id)
    if denied:
        return denied

    records = visit.attendances.order_by(Attendance.check_in_at).all()
    return success_response(data={
        'visit_id': visit.id,
        'attendance_count': len(records),
        'attendance': [record.to_dict() for record in records]
    })


@visits_bp.route('/<int:visit_id>/attendance/manual', methods=['POST'])
@jwt_required()
@active_user_required
def manual_attendance(visit_id):
    """Record attendance for a student without a QR scan."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')
    denied = _require_owner(visit)
    if denied:
        return denied

    data = request.get_json(silent=True) or {}
    student = db.session.get(User, data.get('studentId')) if isinstance(data.get('studentId'), int) else None
    if student is None or student.role != UserRole.STUDENT:
        return error_response("A valid studentId is required", 400)

    attendance, error = CheckInService.record_manual(
        visit, student.id, verified_by=get_current_user().id, notes=data.get('notes')
    )
    if error:
        return error_response(error.message, error.status_code if not error.is_idempotent_success else 409,
                              data=error.to_dict())

    return success_response(data={'attendance': attendance.to_dict()},
                            message='Attendance recorded', status_code=201)


@visits_bp.route('/<int:visit_id>/checkout', methods=['POST'])
@jwt_required()
@student_required
def check_out(visit_id):
    """Check out of a visit."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')

    attendance, error = CheckInService.check_out(visit, get_current_user().id)
    if error:
        return error_response(error.message, error.status_code, data=error.to_dict())

    return success_response(data={'attendance': attendance.to_dict()}, message='Checked out successfully')
