"""Authentication API endpoints."""
from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity
from intrack import limiter
from intrack.services.auth_service import AuthService
from intrack.utils.decorators import get_current_user
from intrack.utils.helpers import success_response, error_response

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return success_response(message="Auth service is running")


@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per hour")
def register():
    """Register a student or company account."""
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400)

    result, error = AuthService.register(
        email=(data.get("email") or "").strip(),
        password=data.get("password") or "",
        name=data.get("name") or "",
        role=data.get("role") or "STUDENT",
        roll_number=data.get("rollNumber"),
        mobile_number=data.get("mobileNumber"),
        company_name=data.get("companyName")
    )

    if error:
        status = 409 if error == "Email already exists" else 400
        return error_response(error, status)

    return success_response(data=result, message="Registration successful", status_code=201)


@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """User login."""
    data = request.get_json(silent=True)
    if not data:
        return error_response("Request body must be JSON", 400)

    email = (data.get("email") or "").strip()
    password = data.get("password") or ""

    if not email or not password:
        return error_response("Email and password are required", 400)

    result, error = AuthService.login(email, password)

    if error:
        return error_response(error, 401)

    return success_response(data=result, message="Login successful")


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def get_me():
    """Get current user profile."""
    user = get_current_user()

    if not user:
        return error_response("User not found", 404)

    return success_response(data=user.to_dict())


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_token():
    """Refresh access token."""
    result, error = AuthService.refresh_token(int(get_jwt_identity()))

    if error:
        return error_response(error, 401)

    return success_response(data=result, message="Token refreshed")
