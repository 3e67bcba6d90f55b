"""Test visit update and delete outcomes."""
from datetime import timedelta

from sqlalchemy import update

from intrack import db
from intrack.models.visit import Visit
from intrack.services.visit_service import VisitService
from conftest import T0


def test_concurrent_update_is_a_conflict(make_visit, student):
    visit = make_visit(student)

    # Another writer bumps the row version behind this session's back
    db.session.execute(
        update(Visit)
        .where(Visit.id == visit.id)
        .values(version=Visit.version + 1)
        .execution_options(synchronize_session=False)
    )

    updated, error = VisitService.update_visit(visit, {'purpose': 'Quality lab walkthrough'},
                                               now=T0 - timedelta(days=1))

    assert updated is None
    assert error.status_code == 409
    assert error.message == "Visit was modified concurrently, please retry"


def test_update_rejections_are_bad_requests(make_visit, student):
    visit = make_visit(student)

    _, error = VisitService.update_visit(visit, {'end_time': visit.start_time}, now=T0 - timedelta(days=1))
    assert (error.message, error.status_code) == ("End time must be after start time", 400)

    _, error = VisitService.update_visit(visit, {'purpose': 'Too late'}, now=T0 + timedelta(days=1))
    assert (error.message, error.status_code) == ("Cannot update completed visit", 400)


def test_delete_rejected_once_started(make_visit, student):
    visit = make_visit(student)

    error = VisitService.delete_visit(visit, now=T0 + timedelta(minutes=1))

    assert error.status_code == 400
    assert str(error) == "Cannot delete active or completed visit"
    assert db.session.get(Visit, visit.id) is not None
