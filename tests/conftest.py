"""Shared test fixtures."""

from datetime import UTC, date, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from foodsave.chat.models import ChatMessage
from foodsave.database.base import Base
from foodsave.donations.models import Donation, DonationStatus
from foodsave.food.models import FoodItem
from foodsave.recipes.models import SavedRecipe
from foodsave.stakeholders.models import NO_CAPACITY, Stakeholder

# Models must be imported so Base.metadata.create_all() sees all tables.
_ALL_MODELS = [Stakeholder, FoodItem, Donation, ChatMessage, SavedRecipe]


@pytest.fixture
def engine():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _stakeholder(db, sid: str, name: str, capacity: int = NO_CAPACITY) -> Stakeholder:
    stakeholder = Stakeholder(
        id=sid,
        name=name,
        email=f"{sid}@example.com",
        password_hash="$2b$12$fakehash",
        region="Leeds",
        capacity=capacity,
    )
    db.add(stakeholder)
    db.commit()
    return stakeholder


@pytest.fixture
def household(db_session):
    return _stakeholder(db_session, "h1", "Hannah Household")


@pytest.fixture
def other_household(db_session):
    return _stakeholder(db_session, "h2", "Omar Other")


@pytest.fixture
def charity(db_session):
    return _stakeholder(db_session, "c1", "City Food Bank", capacity=40)


@pytest.fixture
def make_item(db_session):
    """Factory for food items expiring ``days`` days from today."""

    def _make(owner: Stakeholder, name: str = "Milk", days: int = 5, quantity: int = 1, **kwargs) -> FoodItem:
        item = FoodItem(
            stakeholder_id=owner.id,
            name=name,
            expiry_date=date.today() + timedelta(days=days),
            quantity=quantity,
            **kwargs,
        )
        db_session.add(item)
        db_session.commit()
        return item

    return _make


@pytest.fixture
def make_donation(db_session):
    def _make(donor: Stakeholder, charity: Stakeholder, status: DonationStatus = DonationStatus.PENDING) -> Donation:
        donation = Donation(donor_id=donor.id, charity_id=charity.id, status=status, items=[])
        db_session.add(donation)
        db_session.commit()
        return donation

    return _make


@pytest.fixture
def approved_donation(make_donation, household, charity):
    return make_donation(household, charity, DonationStatus.APPROVED)


class RecordingPublisher:
    """Event publisher that keeps every published event for assertions."""

    def __init__(self):
        self.events = []

    def publish(self, name, payload):
        self.events.append((name, payload))


@pytest.fixture
def recorder():
    return RecordingPublisher()


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingTransport:
    """Email transport that records messages; ``fail=True`` simulates a refused send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    def send(self, recipient, subject, html_body, text_body=""):
        if self.fail:
            return False
        self.sent.append({"recipient": recipient, "subject": subject, "html": html_body, "text": text_body})
        return True


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))


@pytest.fixture
def transport():
    return RecordingTransport()
