"""Test QR token rotation."""
from datetime import timedelta

import pytest
from sqlalchemy import update

from intrack import db
from intrack.models.qr_token import QRToken
from intrack.models.visit import Visit
from intrack.services.checkin_service import CheckInService
from intrack.services.rotation_service import RotationService, RotationConflictError
from intrack.utils.errors import CheckInErrorKind
from conftest import T0, VISIT_LAT, VISIT_LNG

AT_VISIT = {'lat': VISIT_LAT, 'lng': VISIT_LNG, 'accuracy': 10}


def test_first_token_issued_on_creation(make_visit, student):
    visit = make_visit(student)

    assert visit.regeneration_count == 1
    assert visit.qr_tokens.count() == 1
    assert visit.active_token.generation == 1


def test_rotation_replaces_active_token(make_visit, student):
    visit = make_visit(student)
    old = visit.active_token
    old_value = old.value

    new = RotationService.rotate(visit, now=T0 + timedelta(minutes=5))

    assert new.value != old_value
    assert new.generation == 2
    assert visit.regeneration_count == 2
    assert visit.active_token.id == new.id
    assert old.is_active is False
    assert old.deactivated_at == T0 + timedelta(minutes=5)
    assert QRToken.query.filter_by(visit_id=visit.id, is_active=True).count() == 1


def test_old_token_rejected_after_rotation(make_visit, student):
    visit = make_visit(student)
    old_value = visit.active_token.value
    RotationService.rotate(visit, now=T0 + timedelta(minutes=1))

    attendance, error = CheckInService.check_in(old_value, student.id, AT_VISIT, now=T0 + timedelta(minutes=2))

    assert attendance is None
    assert error.kind is CheckInErrorKind.TOKEN_EXPIRED_OR_INACTIVE


def test_rotation_keeps_visit_identity_and_history(make_visit, student):
    visit = make_visit(student)
    visit_id = visit.id
    for minute in range(1, 4):
        RotationService.rotate(visit, now=T0 + timedelta(minutes=minute))

    assert visit.id == visit_id
    assert [t.generation for t in visit.qr_tokens] == [1, 2, 3, 4]


def test_rotation_allowed_while_pending(make_visit, student):
    visit = make_visit(student, issued_at=T0 - timedelta(days=1))
    token = RotationService.rotate(visit, now=T0 - timedelta(hours=1))

    assert token.is_active
    assert token.generation == 2


def test_concurrent_rotation_is_rejected(make_visit, student):
    visit = make_visit(student)
    visit_id = visit.id

    # Another writer bumps the row version behind this session's back
    db.session.execute(
        update(Visit)
        .where(Visit.id == visit_id)
        .values(version=Visit.version + 1)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(RotationConflictError):
        RotationService.rotate(visit, now=T0 + timedelta(minutes=1))

    assert QRToken.query.filter_by(visit_id=visit_id).count() == 1
    assert QRToken.query.filter_by(visit_id=visit_id, is_active=True).count() == 1


def test_refresh_display_keeps_token(make_visit, student):
    visit = make_visit(student)
    token = visit.active_token
    value, expires_at = token.value, token.expires_at

    refreshed = RotationService.refresh_display(visit, now=T0 + timedelta(minutes=3))

    assert refreshed.id == token.id
    assert refreshed.value == value
    assert refreshed.expires_at == expires_at
    assert refreshed.refresh_count == 1
    assert refreshed.refreshed_at == T0 + timedelta(minutes=3)
