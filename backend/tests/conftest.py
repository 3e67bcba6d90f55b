"""Shared fixtures for the InTrack test suite."""
import math
from datetime import datetime, timedelta

import pytest
from flask_jwt_extended import create_access_token

from intrack import create_app, db
from intrack.models.user import User, UserRole
from intrack.models.visit import Visit
from intrack.services.rotation_service import RotationService
from intrack.utils.helpers import utcnow

VISIT_LAT = 40.0
VISIT_LNG = -74.0

# Meridian offsets from the visit location
LAT_50M = VISIT_LAT + math.degrees(50 / 6371000)
LAT_150M = VISIT_LAT + math.degrees(150 / 6371000)

T0 = datetime(2030, 6, 1, 9, 0, 0)


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(email, role=UserRole.STUDENT, name='Test User', password='password123', **fields):
        user = User(email=email, name=name, role=role, **fields)
        user.set_password(password)
        return user.save()
    return _make_user


@pytest.fixture
def student(make_user):
    return make_user('student@example.com', name='Student One', roll_number='CS-001')


@pytest.fixture
def other_student(make_user):
    return make_user('student2@example.com', name='Student Two', roll_number='CS-002')


@pytest.fixture
def company(make_user):
    return make_user('hr@acme.example.com', role=UserRole.COMPANY, name='Acme HR', company_name='Acme')


@pytest.fixture
def admin(make_user):
    return make_user('admin@example.com', role=UserRole.ADMIN, name='Admin')


@pytest.fixture
def make_visit(app):
    """Persist a visit and issue its first token at ``issued_at``."""
    def _make_visit(owner, start=T0, duration=timedelta(hours=2), latitude=VISIT_LAT,
                    longitude=VISIT_LNG, radius=100, issued_at=None, ttl_minutes=None, **fields):
        visit = Visit(
            owner_id=owner.id,
            company_name=fields.pop('company_name', 'Acme Manufacturing'),
            purpose=fields.pop('purpose', 'Production line tour'),
            start_time=start,
            end_time=start + duration,
            latitude=latitude,
            longitude=longitude,
            radius_meters=radius,
            **fields
        )
        db.session.add(visit)
        db.session.flush()
        RotationService.rotate(visit, now=issued_at or start, ttl_minutes=ttl_minutes)
        return visit
    return _make_visit


@pytest.fixture
def live_visit(make_visit, student):
    """A visit that is ACTIVE right now with a freshly issued token."""
    now = utcnow()
    return make_visit(student, start=now - timedelta(minutes=30), issued_at=now)


@pytest.fixture
def auth_headers(app):
    def _auth_headers(user):
        token = create_access_token(identity=str(user.id), additional_claims={'role': user.role.value})
        return {'Authorization': f'Bearer {token}'}
    return _auth_headers
