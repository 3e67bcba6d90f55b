"""User model for authentication and authorization."""
from enum import Enum
from werkzeug.security import generate_password_hash, check_password_hash
from intrack import db
from intrack.models.base import BaseModel


class UserRole(Enum):
    """User roles enumeration."""
    STUDENT = 'STUDENT'
    COMPANY = 'COMPANY'
    ADMIN = 'ADMIN'


class User(BaseModel):
    """User model for students, company representatives and admins."""

    __tablename__ = 'users'

    # Basic Information
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    roll_number = db.Column(db.String(50), unique=True, nullable=True, index=True)
    mobile_number = db.Column(db.String(20), nullable=True)
    company_name = db.Column(db.String(100), nullable=True)

    role = db.Column(db.Enum(UserRole), nullable=False, default=UserRole.STUDENT)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    last_login = db.Column(db.DateTime, nullable=True)

    # Relationships
    visits = db.relationship('Visit', backref='owner', lazy='dynamic')

    def set_password(self, password: str) -> None:
        """Set user password with hashing."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Check if provided password matches user's password."""
        return check_password_hash(self.password_hash, password)

    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can_view_all_visits(self) -> bool:
        """Company representatives and admins see every visit."""
        return self.role in [UserRole.COMPANY, UserRole.ADMIN]

    def to_dict(self, exclude: list = None) -> dict:
        """Convert to dictionary excluding sensitive data."""
        default_exclude = ['password_hash']
        exclude = (exclude or []) + default_exclude

        result = super().to_dict(exclude=exclude)
        result['role'] = self.role.value if self.role else None

        return result

    def __repr__(self) -> str:
        return f'<User {self.email}>'
