"""Authentication service for user management."""
from typing import Optional, Tuple

from flask_jwt_extended import create_access_token, create_refresh_token

from intrack import db
from intrack.models.user import User, UserRole
from intrack.utils.helpers import utcnow
from intrack.utils.validators import Validator

SELF_REGISTER_ROLES = (UserRole.STUDENT, UserRole.COMPANY)


class AuthService:

    @staticmethod
    def _tokens(user: User) -> dict:
        identity = str(user.id)
        return {
            "access_token": create_access_token(identity=identity, additional_claims={"role": user.role.value}),
            "refresh_token": create_refresh_token(identity=identity),
            "user": user.to_dict()
        }

    @staticmethod
    def login(email: str, password: str) -> Tuple[Optional[dict], Optional[str]]:
        """Authenticate user and return tokens."""
        if not email or not password:
            return None, "Email and password are required"

        if not Validator.validate_email(email):
            return None, "Invalid email format"

        user = User.query.filter_by(email=email.lower().strip()).first()

        if not user or not user.check_password(password):
            return None, "Invalid email or password"

        if not user.is_active:
            return None, "Account is deactivated"

        user.last_login = utcnow()
        db.session.commit()

        return AuthService._tokens(user), None

    @staticmethod
    def register(email: str, password: str, name: str, role: str = "STUDENT",
                 **profile) -> Tuple[Optional[dict], Optional[str]]:
        """Register a student or company account."""
        if not all([email, password, name]):
            return None, "Email, password and name are required"

        if not Validator.validate_email(email):
            return None, "Invalid email format"

        password_check = Validator.validate_password(password)
        if not password_check['is_valid']:
            return None, password_check['errors'][0]

        name_check = Validator.validate_name(name)
        if not name_check['is_valid']:
            return None, name_check['errors'][0]

        try:
            user_role = UserRole((role or "STUDENT").upper())
        except ValueError:
            return None, "Invalid role"
        if user_role not in SELF_REGISTER_ROLES:
            return None, "Invalid role"

        email = email.lower().strip()
        if User.query.filter_by(email=email).first():
            return None, "Email already exists"

        user = User(
            email=email,
            name=name.strip(),
            role=user_role,
            roll_number=profile.get('roll_number') or None,
            mobile_number=profile.get('mobile_number') or None,
            company_name=profile.get('company_name') or None
        )
        user.set_password(password)
        user.save()

        return user.to_dict(), None

    @staticmethod
    def refresh_token(user_id: int) -> Tuple[Optional[dict], Optional[str]]:
        """Generate new access token."""
        user = db.session.get(User, user_id)
        if not user or not user.is_active:
            return None, "User not found or inactive"

        return {
            "access_token": create_access_token(identity=str(user.id),
                                                additional_claims={"role": user.role.value}),
            "user": user.to_dict()
        }, None
