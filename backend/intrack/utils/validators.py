"""Validation utilities for the application."""
import math
import re
from datetime import datetime
from typing import Dict, List, Any, Optional

from flask import current_app

from intrack.utils.helpers import parse_datetime

QUESTION_KINDS = ('text', 'textarea', 'checkbox')


class ValidationError(Exception):
    """Request or domain input failed validation."""

    def __init__(self, message: str = "Validation Error", errors: List[str] = None):
        super().__init__(message)
        self.errors = errors or [message]


class Validator:
    """Validation helper class."""

    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        if not email:
            return False
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return bool(re.match(pattern, email))

    @staticmethod
    def validate_password(password: str) -> Dict[str, Any]:
        """Validate password strength."""
        errors = []

        if not password:
            errors.append("Password is required")
        elif len(password) < 6:
            errors.append("Password must be at least 6 characters long")
        elif len(password) > 128:
            errors.append("Password is too long")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_name(name: str) -> Dict[str, Any]:
        """Validate user name."""
        errors = []

        if not name or not name.strip():
            errors.append("Name is required")
        elif len(name.strip()) < 2:
            errors.append("Name must be at least 2 characters long")
        elif len(name.strip()) > 100:
            errors.append("Name is too long")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> Dict[str, Any]:
        """Validate required fields in data."""
        errors = []

        for field in required_fields:
            if field not in data or data[field] is None or data[field] == '':
                errors.append(f"{field} is required")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def _is_finite_number(value: Any) -> bool:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        try:
            # ints beyond float range overflow here
            return math.isfinite(float(value))
        except OverflowError:
            return False

    @staticmethod
    def validate_coordinates(lat: Any, lng: Any) -> Dict[str, Any]:
        """Latitude in [-90, 90], longitude in [-180, 180]; never clamped."""
        errors = []

        for name, value, bound in (('latitude', lat, 90), ('longitude', lng, 180)):
            if not Validator._is_finite_number(value):
                errors.append(f"{name} must be a number")
            elif not -bound <= value <= bound:
                errors.append(f"{name} must be between -{bound} and {bound}")

        return {
            "is_valid": len(errors) == 0,
            "errors": errors
        }

    @staticmethod
    def validate_visit_payload(data: Dict, today: datetime = None, partial: bool = False) -> Dict[str, Any]:
        """Validate a visit create/update body and return the cleaned fields.

        Raises ValidationError listing every problem found.
        """
        if not isinstance(data, dict):
            raise ValidationError("Request body must be JSON")

        errors = []
        cleaned = {}

        if not partial:
            errors.extend(Validator.validate_required_fields(
                data, ['companyName', 'purpose', 'startTime', 'endTime']
            )['errors'])

        if 'companyName' in data:
            company = str(data['companyName'] or '').strip()
            if not company:
                errors.append("Company name is required")
            elif len(company) > 100:
                errors.append("Company name cannot exceed 100 characters")
            cleaned['company_name'] = company

        if 'purpose' in data:
            purpose = str(data['purpose'] or '').strip()
            if len(purpose) < 3:
                errors.append("Purpose must be at least 3 characters")
            elif len(purpose) > 500:
                errors.append("Purpose cannot exceed 500 characters")
            cleaned['purpose'] = purpose

        if 'notes' in data and data['notes'] is not None:
            notes = str(data['notes']).strip()
            if len(notes) > 1000:
                errors.append("Notes cannot exceed 1000 characters")
            cleaned['notes'] = notes

        for key, field in (('startTime', 'start_time'), ('endTime', 'end_time')):
            if key in data and data[key]:
                parsed = parse_datetime(data[key])
                if parsed is None:
                    errors.append(f"{key} must be an ISO-8601 datetime")
                else:
                    cleaned[field] = parsed

        start, end = cleaned.get('start_time'), cleaned.get('end_time')
        if start and end and end <= start:
            errors.append("End time must be after start time")
        if start and today and start.date() < today.date():
            errors.append("Visit date cannot be in the past")

        if 'location' in data:
            location, location_errors = Validator._clean_location(data['location'], partial=partial)
            errors.extend(location_errors)
            cleaned.update(location)

        if 'extraQuestions' in data:
            questions, question_errors = Validator._clean_questions(data['extraQuestions'])
            errors.extend(question_errors)
            cleaned['extra_questions'] = questions

        if errors:
            raise ValidationError("Validation Error", errors)

        return cleaned

    @staticmethod
    def _clean_location(location: Any, partial: bool = False):
        """On a partial update only the keys present are returned, so an
        omitted radius or address keeps its stored value."""
        default_radius = current_app.config['VISIT_DEFAULT_RADIUS_METERS']
        if location is None:
            cleaned = {'latitude': None, 'longitude': None, 'address': None}
            if not partial:
                cleaned['radius_meters'] = default_radius
            return cleaned, []
        if not isinstance(location, dict):
            return {}, ["location must be an object"]

        errors = []
        cleaned = {}
        if not partial or 'address' in location:
            address = str(location.get('address') or '').strip()
            if len(address) > 255:
                errors.append("Address cannot exceed 255 characters")
            cleaned['address'] = address or None

        lat, lng = location.get('latitude'), location.get('longitude')
        if lat is None and lng is None:
            if not partial:
                cleaned.update({'latitude': None, 'longitude': None})
        else:
            result = Validator.validate_coordinates(lat, lng)
            errors.extend(result['errors'])
            cleaned.update({'latitude': lat, 'longitude': lng})

        if partial and 'radius' not in location:
            return cleaned, errors

        radius = location.get('radius', default_radius)
        low = current_app.config['VISIT_MIN_RADIUS_METERS']
        high = current_app.config['VISIT_MAX_RADIUS_METERS']
        if isinstance(radius, bool) or not isinstance(radius, (int, float)):
            errors.append("radius must be a number")
        elif not low <= radius <= high:
            errors.append(f"radius must be between {low} and {high} meters")
        else:
            cleaned['radius_meters'] = int(radius)

        return cleaned, errors

    @staticmethod
    def _clean_questions(questions: Any):
        if questions is None:
            return [], []
        if not isinstance(questions, list):
            return [], ["extraQuestions must be a list"]

        errors = []
        cleaned = []
        seen = set()
        for index, question in enumerate(questions):
            if not isinstance(question, dict):
                errors.append(f"extraQuestions[{index}] must be an object")
                continue
            question_id = str(question.get('id') or '').strip()
            label = str(question.get('label') or '').strip()
            kind = question.get('type', 'text')
            options = question.get('options') or []

            if not question_id or not label:
                errors.append(f"extraQuestions[{index}] needs an id and a label")
            elif question_id in seen:
                errors.append(f"Duplicate question id: {question_id}")
            if kind not in QUESTION_KINDS:
                errors.append(f"extraQuestions[{index}].type must be one of {', '.join(QUESTION_KINDS)}")
            if not isinstance(options, list) or not all(isinstance(o, str) for o in options):
                errors.append(f"extraQuestions[{index}].options must be a list of strings")
                options = []

            seen.add(question_id)
            cleaned.append({
                'id': question_id,
                'label': label,
                'type': kind,
                'required': bool(question.get('required', False)),
                'options': options if kind == 'checkbox' else []
            })

        return cleaned, errors

    @staticmethod
    def validate_position(data: Dict) -> Dict[str, Optional[float]]:
        """Extract {lat, lng, accuracy} from a check-in body."""
        if not isinstance(data, dict):
            raise ValidationError("Request body must be JSON")

        missing = Validator.validate_required_fields(data, ['gpsLat', 'gpsLng'])
        if not missing['is_valid']:
            raise ValidationError("GPS location is required", missing['errors'])

        accuracy = data.get('accuracy')
        if accuracy is not None and (
                isinstance(accuracy, bool) or not isinstance(accuracy, (int, float)) or not 0 <= accuracy <= 1000):
            raise ValidationError("accuracy must be between 0 and 1000 meters")

        return {'lat': data['gpsLat'], 'lng': data['gpsLng'], 'accuracy': accuracy}
