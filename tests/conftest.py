"""
Shared pytest fixtures for the Civic Admin Portal test suite.

Runs against an in-memory SQLite database (one shared connection via
StaticPool) and a fake messaging client that records payloads instead of
calling Firebase.
"""

import os
import tempfile

# Settings are cached on first import, so the test environment must be set first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="civic-uploads-")
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["ESCALATION_WEBHOOK_URL"] = ""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.core.clock import utcnow
from app.core.exceptions import DeliveryFailureException
from app.infrastructure.database import Base, SessionLocal, engine
from app.infrastructure.image_store import ResolutionImageStore
from app.infrastructure.repositories.complaint_repository import SQLAlchemyComplaintRepository
from app.domain.models.complaint import Complaint
from app.domain.models.user import ROLE_STAFF, ROLE_SUPER_ADMIN
from app.application.services.auth_service import build_claims, create_access_token, create_user
from app.application.services.device_token_service import register_token
from app.interfaces.deps import get_image_store, get_messaging


class FakeMessagingClient:
    """Records every payload; raises DeliveryFailureException when `fail` is set."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, payload):
        if self.fail:
            raise DeliveryFailureException("Requested entity was not found.")
        self.sent.append(payload)
        return f"projects/civic-portal/messages/{len(self.sent)}"


class RecordingNotifier:
    """Escalation notifier that keeps the notices it was asked to send."""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.notices = []

    async def notify(self, notice):
        if notice["complaintId"] in self.fail_for:
            raise DeliveryFailureException("Escalation webhook returned 503: unavailable")
        self.notices.append(notice)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def repo(db):
    return SQLAlchemyComplaintRepository(db, Complaint)


@pytest.fixture
def messaging():
    return FakeMessagingClient()


@pytest.fixture
def failing_messaging():
    return FakeMessagingClient(fail=True)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail_for={"ISS-0001"})


@pytest.fixture
def citizen_token(db):
    """Active web token for the citizen who files complaints in these tests."""
    return register_token(db, "citizen-1", "fcm-token-citizen-1", "web")


@pytest.fixture
def make_complaint(db):
    """Insert a complaint directly, bypassing the status service."""

    def _make(complaint_id="ISS-0001", status="submitted", priority="medium", age=timedelta(0), **fields):
        complaint = Complaint(
            id=complaint_id,
            user_id=fields.pop("user_id", "citizen-1"),
            category=fields.pop("category", "Pothole"),
            description=fields.pop("description", "Large pothole near the bus stop"),
            status=status,
            priority=priority,
            city=fields.pop("city", "Pune"),
            created_at=utcnow() - age,
            **fields,
        )
        db.add(complaint)
        db.commit()
        db.refresh(complaint)
        return complaint

    return _make


@pytest.fixture
def image_store(tmp_path):
    return ResolutionImageStore(base_dir=str(tmp_path))


@pytest.fixture
def client(db, messaging, image_store):
    """TestClient sharing the in-memory database, with messaging and uploads faked."""
    app.dependency_overrides[get_messaging] = lambda: messaging
    app.dependency_overrides[get_image_store] = lambda: image_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _headers(user) -> dict:
    token = create_access_token(data=build_claims(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(db):
    admin = create_user(db, name="Admin", email="admin@test.local", password="admin123", role=ROLE_SUPER_ADMIN)
    return _headers(admin)


@pytest.fixture
def staff_headers(db):
    staff = create_user(
        db,
        name="Staff",
        email="staff@test.local",
        password="staff123",
        role=ROLE_STAFF,
        department="Public Works",
        city="Pune",
    )
    return _headers(staff)
