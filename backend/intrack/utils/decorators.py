"""Custom decorators for authorization."""
from functools import wraps
from flask_jwt_extended import get_jwt_identity
from intrack import db
from intrack.models.user import User, UserRole
from intrack.utils.helpers import error_response


def get_current_user():
    """Load the authenticated user for this request."""
    identity = get_jwt_identity()
    return db.session.get(User, int(identity)) if identity is not None else None


def _role_required(roles, message):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = get_current_user()

            if not user or not user.is_active:
                return error_response("User not found", 404)

            if user.role not in roles:
                return error_response(message, 403)

            return f(*args, **kwargs)
        return decorated_function
    return decorator


def student_required(f):
    """Decorator to require student role."""
    return _role_required([UserRole.STUDENT], "Student access required")(f)


def active_user_required(f):
    """Decorator to require any active account."""
    return _role_required(list(UserRole), "Access denied")(f)
