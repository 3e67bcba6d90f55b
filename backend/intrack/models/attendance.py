"""Attendance model with location verification details."""
from enum import Enum
from intrack import db
from intrack.models.base import BaseModel
from intrack.utils.helpers import utcnow


class AttendanceStatus(Enum):
    PRESENT = 'PRESENT'
    LATE = 'LATE'
    LEFT_EARLY = 'LEFT_EARLY'
    ABSENT = 'ABSENT'


class VerificationMethod(Enum):
    QR_SCAN = 'QR_SCAN'
    MANUAL = 'MANUAL'
    GPS_AUTO = 'GPS_AUTO'


class Attendance(BaseModel):
    """A student's verified presence at a visit, one per (student, visit)."""

    __tablename__ = 'attendances'

    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    visit_id = db.Column(db.Integer, db.ForeignKey('visits.id'), nullable=False)
    check_in_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    check_out_at = db.Column(db.DateTime, nullable=True)

    # Reported device position
    gps_latitude = db.Column(db.Float, nullable=True)
    gps_longitude = db.Column(db.Float, nullable=True)
    gps_accuracy = db.Column(db.Float, nullable=True)  # audit only

    # Location validation result
    distance_from_visit = db.Column(db.Float, nullable=True)
    is_within_radius = db.Column(db.Boolean, nullable=False, default=False)
    validation_message = db.Column(db.String(255), nullable=True)

    # Device info
    user_agent = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)

    status = db.Column(db.Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.PRESENT)
    verification_method = db.Column(db.Enum(VerificationMethod), nullable=False,
                                    default=VerificationMethod.QR_SCAN)
    verified_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    student = db.relationship('User', foreign_keys=[student_id], backref=db.backref('attendances', lazy='dynamic'))

    __table_args__ = (
        db.UniqueConstraint('student_id', 'visit_id', name='uq_attendance_student_visit'),
        db.Index('ix_attendances_visit_check_in', 'visit_id', 'check_in_at'),
    )

    @property
    def duration_seconds(self):
        if self.check_in_at and self.check_out_at:
            return int((self.check_out_at - self.check_in_at).total_seconds())
        return None

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'student_id': self.student_id,
            'visit_id': self.visit_id,
            'check_in_at': self.check_in_at.isoformat(),
            'check_out_at': self.check_out_at.isoformat() if self.check_out_at else None,
            'duration_seconds': self.duration_seconds,
            'gps_location': {
                'lat': self.gps_latitude,
                'lng': self.gps_longitude,
                'accuracy': self.gps_accuracy
            } if self.gps_latitude is not None else None,
            'location_validation': {
                'distance_from_visit': self.distance_from_visit,
                'is_within_radius': self.is_within_radius,
                'validation_message': self.validation_message
            },
            'status': self.status.value,
            'verification_method': self.verification_method.value,
            'verified_by': self.verified_by,
            'notes': self.notes
        }

    def __repr__(self):
        return f'<Attendance {self.student_id}-{self.visit_id}>'
