"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .visit import Visit
from .qr_token import QRToken
from .attendance import Attendance, AttendanceStatus, VerificationMethod
from .feedback import Feedback

__all__ = [
    'BaseModel', 'User', 'UserRole',
    'Visit', 'QRToken',
    'Attendance', 'AttendanceStatus', 'VerificationMethod',
    'Feedback'
]
