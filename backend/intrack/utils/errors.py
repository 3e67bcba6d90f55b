"""Error types shared by the services and the API layer."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class CheckInErrorKind(Enum):
    TOKEN_NOT_FOUND = 'TOKEN_NOT_FOUND'
    TOKEN_EXPIRED_OR_INACTIVE = 'TOKEN_EXPIRED_OR_INACTIVE'
    ALREADY_CHECKED_IN = 'ALREADY_CHECKED_IN'
    OUT_OF_RANGE = 'OUT_OF_RANGE'
    INVALID_COORDINATES = 'INVALID_COORDINATES'
    VISIT_NOT_ACTIVE = 'VISIT_NOT_ACTIVE'
    NOT_CHECKED_IN = 'NOT_CHECKED_IN'
    ALREADY_CHECKED_OUT = 'ALREADY_CHECKED_OUT'


HTTP_STATUS = {
    CheckInErrorKind.TOKEN_NOT_FOUND: 404,
    CheckInErrorKind.TOKEN_EXPIRED_OR_INACTIVE: 400,
    CheckInErrorKind.ALREADY_CHECKED_IN: 200,
    CheckInErrorKind.OUT_OF_RANGE: 400,
    CheckInErrorKind.INVALID_COORDINATES: 400,
    CheckInErrorKind.VISIT_NOT_ACTIVE: 400,
    CheckInErrorKind.NOT_CHECKED_IN: 404,
    CheckInErrorKind.ALREADY_CHECKED_OUT: 409,
}


@dataclass
class CheckInError:
    """A failed (or idempotent no-op) attendance operation."""

    kind: CheckInErrorKind
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    attendance: Optional[Any] = None

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    @property
    def is_idempotent_success(self) -> bool:
        return self.kind is CheckInErrorKind.ALREADY_CHECKED_IN

    def to_dict(self) -> dict:
        data = {'kind': self.kind.value, **self.details}
        if self.attendance is not None:
            data['attendance'] = self.attendance.to_dict()
        return data


@dataclass
class ServiceError:
    """A rejected visit or feedback operation and the HTTP status it maps to."""

    message: str
    status_code: int = 400

    def __str__(self) -> str:
        return self.message
