"""Attendance check-in, check-out and manual recording."""
from datetime import datetime
from typing import Dict, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from intrack import db
from intrack.models.attendance import Attendance, AttendanceStatus, VerificationMethod
from intrack.models.qr_token import QRToken
from intrack.services.gps_service import GPSService
from intrack.services.lifecycle_service import LifecycleService, VisitStatus
from intrack.utils.errors import CheckInError, CheckInErrorKind
from intrack.utils.helpers import utcnow
from intrack.utils.validators import ValidationError

CheckInResult = Tuple[Optional[Attendance], Optional[CheckInError]]


class CheckInService:
    """Coordinates a check-in attempt.

    Checks run in a fixed order and stop at the first failure:
    token lookup, token usability, existing attendance, GPS radius.
    Nothing in the sequence raises; every outcome is an ``(attendance, error)``
    pair. Database failures are rolled back, logged and re-raised.
    """

    @staticmethod
    def check_in(token_value: str, student_id: int, position: Dict, now: datetime = None,
                 visit_id: int = None, device: Dict = None) -> CheckInResult:
        now = now or utcnow()

        # 1. Resolve token to its visit
        token = (QRToken.query.filter_by(value=token_value).first()
                 if isinstance(token_value, str) and token_value else None)
        if token is None or (visit_id is not None and token.visit_id != visit_id):
            return None, CheckInError(
                CheckInErrorKind.TOKEN_NOT_FOUND,
                "QR code not recognised. Please scan a current code."
            )
        visit = token.visit

        # 2. Visit must be ACTIVE and the token active and unexpired
        if not LifecycleService.is_token_usable(visit, token, now):
            return None, CheckInError(
                CheckInErrorKind.TOKEN_EXPIRED_OR_INACTIVE,
                "Session not active or code expired",
                {
                    'visit_status': LifecycleService.status_of_visit(visit, now).value,
                    'token_expires_at': token.expires_at.isoformat()
                }
            )

        # 3. Idempotent: an existing record is returned, not overwritten
        existing = CheckInService._find(student_id, visit.id)
        if existing is not None:
            return None, CheckInService._already_checked_in(existing)

        # 4. GPS radius
        try:
            validation = GPSService.validate(visit, position)
        except ValidationError as e:
            current_app.logger.warning(
                f'Invalid coordinates from student {student_id} for visit {visit.id}: {e.errors}'
            )
            return None, CheckInError(
                CheckInErrorKind.INVALID_COORDINATES,
                "Invalid GPS coordinates",
                {'errors': e.errors}
            )

        if not validation.is_within_radius:
            current_app.logger.warning(
                f'Check-in out of range: student {student_id}, visit {visit.id}, '
                f'distance {validation.distance_meters}m, radius {validation.allowed_radius_meters}m'
            )
            return None, CheckInError(
                CheckInErrorKind.OUT_OF_RANGE,
                validation.message,
                {
                    'distance_meters': validation.distance_meters,
                    'allowed_radius_meters': validation.allowed_radius_meters,
                    'is_within_radius': False
                }
            )

        # 5. Record attendance; the unique (student, visit) constraint settles races
        device = device or {}
        attendance = Attendance(
            student_id=student_id,
            visit_id=visit.id,
            check_in_at=now,
            gps_latitude=position['lat'],
            gps_longitude=position['lng'],
            gps_accuracy=position.get('accuracy'),
            distance_from_visit=validation.distance_meters,
            is_within_radius=True,
            validation_message=validation.message,
            user_agent=device.get('user_agent'),
            ip_address=device.get('ip_address'),
            status=AttendanceStatus.PRESENT,
            verification_method=VerificationMethod.QR_SCAN
        )
        return CheckInService._insert(attendance)

    @staticmethod
    def record_manual(visit, student_id: int, verified_by: int, now: datetime = None,
                      notes: str = None) -> CheckInResult:
        """Record attendance vouched for by the visit owner or an admin."""
        now = now or utcnow()

        if LifecycleService.status_of_visit(visit, now) is VisitStatus.PENDING:
            return None, CheckInError(
                CheckInErrorKind.VISIT_NOT_ACTIVE,
                "Attendance cannot be recorded before the visit starts"
            )

        existing = CheckInService._find(student_id, visit.id)
        if existing is not None:
            return None, CheckInService._already_checked_in(existing)

        attendance = Attendance(
            student_id=student_id,
            visit_id=visit.id,
            check_in_at=now,
            is_within_radius=False,
            validation_message='Recorded manually',
            status=AttendanceStatus.PRESENT,
            verification_method=VerificationMethod.MANUAL,
            verified_by=verified_by,
            notes=notes
        )
        return CheckInService._insert(attendance)

    @staticmethod
    def check_out(visit, student_id: int, now: datetime = None) -> CheckInResult:
        """Close an attendance; leaving before the end marks it LEFT_EARLY."""
        now = now or utcnow()

        attendance = CheckInService._find(student_id, visit.id)
        if attendance is None:
            return None, CheckInError(
                CheckInErrorKind.NOT_CHECKED_IN,
                "You have not checked in to this visit"
            )
        if attendance.check_out_at is not None:
            return None, CheckInError(
                CheckInErrorKind.ALREADY_CHECKED_OUT,
                "You have already checked out of this visit",
                attendance=attendance
            )

        attendance.check_out_at = now
        if now < visit.end_time:
            attendance.status = AttendanceStatus.LEFT_EARLY

        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Failed to check out student {student_id} from visit {visit.id}')
            raise

        current_app.logger.info(
            f'Student {student_id} checked out of visit {visit.id} ({attendance.status.value})'
        )
        return attendance, None

    @staticmethod
    def _find(student_id: int, visit_id: int) -> Optional[Attendance]:
        return Attendance.query.filter_by(student_id=student_id, visit_id=visit_id).first()

    @staticmethod
    def _already_checked_in(existing: Attendance) -> CheckInError:
        return CheckInError(
            CheckInErrorKind.ALREADY_CHECKED_IN,
            "You have already checked in to this visit",
            {'already_checked_in': True},
            attendance=existing
        )

    @staticmethod
    def _insert(attendance: Attendance) -> CheckInResult:
        student_id, visit_id = attendance.student_id, attendance.visit_id
        db.session.add(attendance)
        try:
            db.session.commit()
        except IntegrityError:
            # A concurrent request for the same (student, visit) won the insert
            db.session.rollback()
            existing = CheckInService._find(student_id, visit_id)
            if existing is None:
                raise
            return None, CheckInService._already_checked_in(existing)
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception(f'Failed to record attendance for student {student_id}, visit {visit_id}')
            raise

        current_app.logger.info(
            f'Student {student_id} checked in to visit {visit_id} '
            f'via {attendance.verification_method.value} (distance {attendance.distance_from_visit}m)'
        )
        return attendance, None
