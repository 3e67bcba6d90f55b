"""Industrial visit model with location and QR token ownership."""
from datetime import datetime
from typing import Optional
from sqlalchemy import func
from intrack import db
from intrack.models.base import BaseModel


class Visit(BaseModel):
    """One scheduled company visit.

    Status is never stored: it is derived from the scheduled window by
    ``LifecycleService.status_of_visit``. Attendance and feedback counters are
    derived from their tables at read time.
    """

    __tablename__ = 'visits'

    owner_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    company_name = db.Column(db.String(100), nullable=False, index=True)
    purpose = db.Column(db.String(500), nullable=False)
    notes = db.Column(db.String(1000), nullable=True)

    # Scheduled window [start_time, end_time)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    # Location for GPS verification
    address = db.Column(db.String(255), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    radius_meters = db.Column(db.Integer, nullable=False, default=100)

    # Dynamic feedback questions: [{id, label, type, required, options}]
    extra_questions = db.Column(db.JSON, nullable=False, default=list)

    # Rotation audit and optimistic locking
    regeneration_count = db.Column(db.Integer, nullable=False, default=0)
    version = db.Column(db.Integer, nullable=False)

    # Relationships
    qr_tokens = db.relationship('QRToken', backref='visit', lazy='dynamic',
                                cascade='all, delete-orphan', order_by='QRToken.generation')
    attendances = db.relationship('Attendance', backref='visit', lazy='dynamic',
                                  cascade='all, delete-orphan')
    feedbacks = db.relationship('Feedback', backref='visit', lazy='dynamic',
                                cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint('end_time > start_time', name='ck_visits_time_window'),
        # Range bounds are configurable (VISIT_MIN/MAX_RADIUS_METERS) and enforced by the validator
        db.CheckConstraint('radius_meters > 0', name='ck_visits_radius_positive'),
    )
    __mapper_args__ = {'version_id_col': version}

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def active_token(self):
        """The token currently flagged active, regardless of expiry."""
        from intrack.models.qr_token import QRToken
        return self.qr_tokens.filter(QRToken.is_active.is_(True)).first()

    @property
    def attendance_count(self) -> int:
        return self.attendances.count()

    @property
    def feedback_count(self) -> int:
        return self.feedbacks.count()

    @property
    def average_rating(self) -> float:
        from intrack.models.feedback import Feedback
        average = db.session.query(
            func.avg((Feedback.stars_content + Feedback.stars_delivery + Feedback.stars_relevance) / 3.0)
        ).filter(Feedback.visit_id == self.id).scalar()
        return round(float(average), 2) if average is not None else 0.0

    def location_dict(self) -> Optional[dict]:
        if not self.has_location:
            return None
        return {
            'address': self.address,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'radius': self.radius_meters
        }

    def to_dict(self, now: datetime = None, include_counters: bool = True) -> dict:
        """Convert to dictionary with the derived status."""
        from intrack.services.lifecycle_service import LifecycleService

        data = {
            'id': self.id,
            'owner_id': self.owner_id,
            'company_name': self.company_name,
            'purpose': self.purpose,
            'notes': self.notes,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'location': self.location_dict(),
            'extra_questions': self.extra_questions or [],
            'status': LifecycleService.status_of_visit(self, now).value,
            'regeneration_count': self.regeneration_count,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

        if include_counters:
            data.update({
                'attendance_count': self.attendance_count,
                'feedback_count': self.feedback_count,
                'average_rating': self.average_rating
            })

        return data

    def __repr__(self):
        return f'<Visit {self.company_name} {self.start_time:%Y-%m-%d}>'
