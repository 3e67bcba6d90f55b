"""Visit feedback submission."""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from intrack import db
from intrack.models.attendance import Attendance
from intrack.models.feedback import Feedback
from intrack.utils.errors import ServiceError
from intrack.utils.helpers import utcnow
from intrack.utils.validators import ValidationError

RATING_FIELDS = ('starsContent', 'starsDelivery', 'starsRelevance')


class FeedbackService:
    """Service for feedback from students who attended a visit."""

    @staticmethod
    def validate_payload(data: Dict, questions: List[Dict]) -> Dict[str, Any]:
        """Check ratings, text lengths and extra answers; return model fields."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be JSON")

        errors = []
        for field in RATING_FIELDS:
            value = data.get(field)
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
                errors.append(f"{field} must be an integer between 1 and 5")

        if not isinstance(data.get('recommend'), bool):
            errors.append("recommend must be true or false")

        short_answer = str(data.get('shortAnswer') or '').strip()
        long_answer = str(data.get('longAnswer') or '').strip()
        if not 10 <= len(short_answer) <= 200:
            errors.append("Short feedback must be between 10 and 200 characters")
        if not 20 <= len(long_answer) <= 1000:
            errors.append("Detailed feedback must be between 20 and 1000 characters")

        responses, response_errors = FeedbackService._clean_responses(data.get('extraResponses'), questions)
        errors.extend(response_errors)

        if errors:
            raise ValidationError("Validation Error", errors)

        return {
            'stars_content': data['starsContent'],
            'stars_delivery': data['starsDelivery'],
            'stars_relevance': data['starsRelevance'],
            'recommend': data['recommend'],
            'short_answer': short_answer,
            'long_answer': long_answer,
            'extra_responses': responses,
            'is_anonymous': bool(data.get('isAnonymous', False))
        }

    @staticmethod
    def _clean_responses(raw: Any, questions: List[Dict]):
        """Answers keyed by question id, typed by the question kind.

        text/textarea take a string; checkbox takes a list of its options,
        or a bool when the question has no options.
        """
        raw = raw or {}
        if isinstance(raw, list):
            raw = {item.get('questionId'): item.get('response') for item in raw if isinstance(item, dict)}
        if not isinstance(raw, dict):
            return [], ["extraResponses must be an object keyed by question id"]

        errors = []
        responses = []
        known = {q['id'] for q in questions}
        for question_id in raw:
            if question_id not in known:
                errors.append(f"Unknown question: {question_id}")

        for question in questions:
            value = raw.get(question['id'])
            kind = question['type']
            if value is None or value == '' or value == []:
                if question.get('required'):
                    errors.append(f"'{question['label']}' is required")
                continue

            if kind in ('text', 'textarea'):
                if not isinstance(value, str):
                    errors.append(f"'{question['label']}' must be text")
                    continue
                value = value.strip()
            elif question.get('options'):
                if not isinstance(value, list) or not all(v in question['options'] for v in value):
                    errors.append(f"'{question['label']}' must be a list of: {', '.join(question['options'])}")
                    continue
            elif not isinstance(value, bool):
                errors.append(f"'{question['label']}' must be true or false")
                continue

            responses.append({
                'question_id': question['id'],
                'question_label': question['label'],
                'kind': kind,
                'value': value
            })

        return responses, errors

    @staticmethod
    def submit(visit, student_id: int, data: Dict, now: datetime = None) -> Tuple[Optional[Feedback], Optional[ServiceError]]:
        """Store one feedback per (student, visit); the student must have attended."""
        fields = FeedbackService.validate_payload(data, visit.extra_questions or [])

        attended = Attendance.query.filter_by(student_id=student_id, visit_id=visit.id).first()
        if attended is None:
            return None, ServiceError("Only students who attended the visit can submit feedback", 403)

        if Feedback.query.filter_by(student_id=student_id, visit_id=visit.id).first():
            return None, ServiceError("Feedback already submitted for this visit", 409)

        feedback = Feedback(student_id=student_id, visit_id=visit.id,
                            submitted_at=now or utcnow(), **fields)
        db.session.add(feedback)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return None, ServiceError("Feedback already submitted for this visit", 409)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Failed to store feedback for visit {visit.id}')
            raise

        current_app.logger.info(f'Feedback submitted for visit {visit.id} by student {student_id}')
        return feedback, None
