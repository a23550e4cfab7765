"""
Shared fixtures: an in-memory SQLite database per test and a recording notifier.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OWNER_API_KEY", "test-owner-key")
os.environ["EMAIL_ENABLED"] = "false"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.config.settings import Settings
from app.models.base import Base
from app.services.booking.booking_service import BookingTransactionManager


class RecordingNotifier:
    """Notifier double that keeps what would have been sent."""

    def __init__(self):
        self.created = []
        self.status_changes = []
        self.codes = []

    def booking_created(self, booking, shop):
        self.created.append(booking.id)

    def booking_status_changed(self, booking, shop, previous_status):
        if booking.status != previous_status:
            self.status_changes.append((booking.id, previous_status, booking.status))

    def verification_code(self, email, code, shop_name=None):
        self.codes.append((email, code))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def manager(db, notifier):
    """Booking manager without the contact verification precondition"""
    return BookingTransactionManager.from_session(
        db,
        notifier=notifier,
        settings=Settings(REQUIRE_CONTACT_VERIFICATION=False),
    )
