"""Helper functions for the application."""
from datetime import datetime, timezone
from flask import jsonify
from typing import Any, Optional


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 string into naive UTC. Returns None when unparseable."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'error': True,
        'message': getattr(error, 'description', None) or str(error),
        'status_code': status_code
    }), status_code


def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code


def error_response(message: str, status_code: int = 400, data: Any = None):
    """Return consistent error response."""
    response = {
        'error': True,
        'message': message,
        'status_code': status_code
    }

    if data is not None:
        response['data'] = data

    return jsonify(response), status_code
