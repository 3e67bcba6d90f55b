"""QR token issued for checking into a visit."""
from datetime import datetime
from intrack import db
from intrack.models.base import BaseModel
from intrack.utils.helpers import utcnow


class QRToken(BaseModel):
    """One generation of a visit's check-in credential.

    Rows are kept after rotation for audit; at most one row per visit has
    ``is_active`` set, enforced by a partial unique index.
    """

    __tablename__ = 'qr_tokens'

    visit_id = db.Column(db.Integer, db.ForeignKey('visits.id'), nullable=False)
    value = db.Column(db.String(64), unique=True, nullable=False, index=True)
    generation = db.Column(db.Integer, nullable=False, default=1)
    issued_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    deactivated_at = db.Column(db.DateTime, nullable=True)

    # Display refreshes do not invalidate the token
    refreshed_at = db.Column(db.DateTime, nullable=True)
    refresh_count = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint('visit_id', 'generation', name='uq_qr_tokens_visit_generation'),
        db.Index('uq_qr_tokens_one_active_per_visit', 'visit_id', unique=True,
                 sqlite_where=db.text('is_active = 1'),
                 postgresql_where=db.text('is_active')),
    )

    def is_expired(self, now: datetime = None) -> bool:
        """Expired once ``now`` reaches ``expires_at``."""
        return (now or utcnow()) >= self.expires_at

    def deactivate(self, now: datetime = None) -> None:
        self.is_active = False
        self.deactivated_at = now or utcnow()

    def to_dict(self, now: datetime = None) -> dict:
        return {
            'id': self.id,
            'visit_id': self.visit_id,
            'generation': self.generation,
            'issued_at': self.issued_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
            'is_active': self.is_active and not self.is_expired(now),
            'refreshed_at': self.refreshed_at.isoformat() if self.refreshed_at else None,
            'refresh_count': self.refresh_count,
            'token': self.value
        }

    def __repr__(self):
        return f'<QRToken visit={self.visit_id} gen={self.generation}>'
