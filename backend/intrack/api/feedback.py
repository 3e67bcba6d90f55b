"""Visit feedback API endpoints."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from intrack import db
from intrack.models.feedback import Feedback
from intrack.models.visit import Visit
from intrack.services.feedback_service import FeedbackService
from intrack.utils.decorators import get_current_user, student_required, active_user_required
from intrack.utils.helpers import success_response, error_response

feedback_bp = Blueprint('feedback', __name__)


@feedback_bp.route('/<int:visit_id>/feedback', methods=['POST'])
@jwt_required()
@student_required
def submit_feedback(visit_id):
    """Submit feedback for an attended visit."""
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')

    feedback, error = FeedbackService.submit(visit, get_current_user().id, request.get_json(silent=True))
    if error:
        return error_response(error.message, error.status_code)

    return success_response(
        data={'feedback': feedback.to_dict()},
        message='Feedback submitted successfully',
        status_code=201
    )


@feedback_bp.route('/<int:visit_id>/feedback', methods=['GET'])
@jwt_required()
@active_user_required
def list_feedback(visit_id):
    visit = db.get_or_404(Visit, visit_id, description='Visit not found')
    user = get_current_user()
    if not user.can_view_all_visits() and visit.owner_id != user.id:
        return error_response("Access denied to this visit", 403)

    feedbacks = visit.feedbacks.order_by(Feedback.submitted_at.desc()).all()
    return success_response(data={
        'visit_id': visit.id,
        'feedback_count': len(feedbacks),
        'average_rating': visit.average_rating,
        'feedback': [feedback.to_dict() for feedback in feedbacks]
    })
