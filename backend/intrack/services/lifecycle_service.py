"""Visit lifecycle derived from the scheduled window."""
from datetime import datetime
from enum import Enum

from intrack.utils.helpers import utcnow


class VisitStatus(Enum):
    PENDING = 'PENDING'
    ACTIVE = 'ACTIVE'
    COMPLETED = 'COMPLETED'


class LifecycleService:
    """Pure status derivation: PENDING -> ACTIVE -> COMPLETED.

    The window is half-open: start_time is already ACTIVE, end_time is
    already COMPLETED.
    """

    @staticmethod
    def status_of(start_time: datetime, end_time: datetime, now: datetime) -> VisitStatus:
        if now < start_time:
            return VisitStatus.PENDING
        if now < end_time:
            return VisitStatus.ACTIVE
        return VisitStatus.COMPLETED

    @staticmethod
    def status_of_visit(visit, now: datetime = None) -> VisitStatus:
        return LifecycleService.status_of(visit.start_time, visit.end_time, now or utcnow())

    @staticmethod
    def is_token_usable(visit, token, now: datetime = None) -> bool:
        """True iff the visit is ACTIVE, the token belongs to it, is flagged active and unexpired."""
        now = now or utcnow()
        if token is None or token.visit_id != visit.id:
            return False
        return (
            LifecycleService.status_of_visit(visit, now) is VisitStatus.ACTIVE
            and token.is_active
            and now < token.expires_at
        )

    @staticmethod
    def can_update(visit, now: datetime = None) -> bool:
        return LifecycleService.status_of_visit(visit, now) is not VisitStatus.COMPLETED

    @staticmethod
    def can_delete(visit, now: datetime = None) -> bool:
        return LifecycleService.status_of_visit(visit, now) is VisitStatus.PENDING

    @staticmethod
    def status_filter(status: VisitStatus, now: datetime = None):
        """SQL criterion selecting visits whose derived status is ``status``."""
        from intrack.models.visit import Visit

        now = now or utcnow()
        if status is VisitStatus.PENDING:
            return Visit.start_time > now
        if status is VisitStatus.ACTIVE:
            return (Visit.start_time <= now) & (Visit.end_time > now)
        return Visit.end_time <= now
