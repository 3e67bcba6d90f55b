"""QR token rotation and display refresh."""
from datetime import datetime
from typing import Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from intrack import db
from intrack.models.qr_token import QRToken
from intrack.services.qr_service import QRService
from intrack.utils.helpers import utcnow


class RotationConflictError(Exception):
    """Another rotation of the same visit committed first."""

    def __init__(self, visit_id: int):
        super().__init__("QR code was regenerated concurrently, please retry")
        self.visit_id = visit_id


class RotationService:
    """Replace a visit's active token without touching the visit's identity."""

    @staticmethod
    def rotate(visit, now: datetime = None, ttl_minutes: int = None) -> QRToken:
        """Deactivate the current token (if any) and issue the next generation.

        Allowed in any state; a token issued while PENDING only becomes usable
        once the visit is ACTIVE. The visit's version column serializes
        concurrent rotations: the losing writer gets RotationConflictError.
        """
        now = now or utcnow()
        visit_id = visit.id
        minted = QRService.mint_token(ttl_minutes, now)

        try:
            previous = visit.active_token
            visit.regeneration_count = (visit.regeneration_count or 0) + 1
            if previous is not None:
                previous.deactivate(now)
            # Old row must be inactive before the new one hits the partial unique index
            db.session.flush()

            token = QRToken(
                visit_id=visit_id,
                value=minted.value,
                generation=visit.regeneration_count,
                issued_at=minted.issued_at,
                expires_at=minted.expires_at,
                is_active=True
            )
            db.session.add(token)
            db.session.commit()
        except (StaleDataError, IntegrityError) as e:
            db.session.rollback()
            current_app.logger.warning(f'Concurrent QR rotation for visit {visit_id} discarded: {e}')
            raise RotationConflictError(visit_id) from e
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Failed to rotate QR token for visit {visit_id}')
            raise

        current_app.logger.info(
            f'QR token rotated for visit {visit_id}: generation {token.generation}, '
            f'expires {token.expires_at.isoformat()}'
        )
        return token

    @staticmethod
    def refresh_display(visit, now: datetime = None) -> Optional[QRToken]:
        """Touch display metadata of the active token for live UI updates.

        The token value, expiry and active flag are left as they are.
        """
        token = visit.active_token
        if token is None:
            return None

        token.refreshed_at = now or utcnow()
        token.refresh_count = (token.refresh_count or 0) + 1
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Failed to refresh QR display for visit {visit.id}')
            raise

        return token
