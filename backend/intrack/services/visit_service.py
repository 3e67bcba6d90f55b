"""Industrial visit management service."""
from datetime import datetime
from typing import Dict, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from intrack import db
from intrack.models.qr_token import QRToken
from intrack.models.visit import Visit
from intrack.services.lifecycle_service import LifecycleService, VisitStatus
from intrack.services.rotation_service import RotationService
from intrack.utils.errors import ServiceError
from intrack.utils.helpers import utcnow
from intrack.utils.validators import ValidationError


class VisitService:
    """Service for creating and maintaining visits."""

    @staticmethod
    def create_visit(owner_id: int, fields: Dict, now: datetime = None) -> Tuple[Visit, QRToken]:
        """Create a visit and issue its first QR token in one transaction."""
        now = now or utcnow()
        start, end = fields.get('start_time'), fields.get('end_time')
        if start is None or end is None or end <= start:
            raise ValidationError("End time must be after start time")

        visit = Visit(owner_id=owner_id, **fields)
        db.session.add(visit)
        try:
            db.session.flush()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception('Failed to create visit')
            raise

        token = RotationService.rotate(visit, now=now)
        current_app.logger.info(
            f'Visit {visit.id} created by user {owner_id} for {visit.company_name}'
        )
        return visit, token

    @staticmethod
    def update_visit(visit: Visit, fields: Dict, now: datetime = None) -> Tuple[Optional[Visit], Optional[ServiceError]]:
        """Apply changes unless the visit has completed."""
        if not LifecycleService.can_update(visit, now):
            return None, ServiceError("Cannot update completed visit", 400)

        start = fields.get('start_time', visit.start_time)
        end = fields.get('end_time', visit.end_time)
        if end <= start:
            return None, ServiceError("End time must be after start time", 400)

        for key, value in fields.items():
            setattr(visit, key, value)

        try:
            db.session.commit()
        except StaleDataError:
            db.session.rollback()
            return None, ServiceError("Visit was modified concurrently, please retry", 409)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Failed to update visit {visit.id}')
            raise

        current_app.logger.info(f'Visit {visit.id} updated')
        return visit, None

    @staticmethod
    def delete_visit(visit: Visit, now: datetime = None) -> Optional[ServiceError]:
        """Delete a visit that has not started yet."""
        if not LifecycleService.can_delete(visit, now):
            return ServiceError("Cannot delete active or completed visit", 400)

        visit_id = visit.id
        try:
            visit.delete()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Failed to delete visit {visit_id}')
            raise

        current_app.logger.info(f'Visit {visit_id} deleted')
        return None

    @staticmethod
    def list_visits(user, status: Optional[VisitStatus] = None, company_name: str = None,
                    page: int = 1, limit: int = 10, now: datetime = None) -> Dict:
        """Visits visible to ``user``, newest first, with pagination metadata."""
        now = now or utcnow()
        query = Visit.query

        if not user.can_view_all_visits():
            query = query.filter(Visit.owner_id == user.id)
        if company_name:
            query = query.filter(Visit.company_name.ilike(f'%{company_name}%'))
        if status is not None:
            query = query.filter(LifecycleService.status_filter(status, now))

        pagination = query.order_by(Visit.created_at.desc(), Visit.id.desc()).paginate(
            page=page, per_page=limit, error_out=False
        )

        return {
            'visits': [visit.to_dict(now=now) for visit in pagination.items],
            'pagination': {
                'current_page': pagination.page,
                'total_pages': pagination.pages,
                'total_visits': pagination.total,
                'has_next': pagination.has_next,
                'has_prev': pagination.has_prev
            }
        }
