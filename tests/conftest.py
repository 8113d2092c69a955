"""
Pytest configuration and fixtures for testing.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database.session import Base, get_db
from main import app
from app.models.trip import Trip, TripStatusEnum
from app.models.registration import Registration, PaymentMethodEnum
from app.services.gift_card_ledger import GiftCardLedger
from app.services.notification_service import get_registration_notifier
from common_utils import utc_now
from common_utils.auth.utils import create_access_token


# Test database URL - using in-memory SQLite for tests
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

ADMIN_PERMISSIONS = [
    "trip.create", "trip.read", "trip.update", "trip.delete",
    "registration.create", "registration.read", "registration.update", "registration.delete",
    "gift-card.create", "gift-card.read", "gift-card.redeem", "gift-card.delete",
]


class RecordingNotifier:
    """Stands in for RegistrationNotifier; records what would have been sent"""

    def __init__(self):
        self.calls = []

    def notify_registrations(self, registrations, trip):
        self.calls.append({"registrations": registrations, "trip": trip})


@pytest.fixture(scope="function")
def test_db():
    """
    Create a fresh test database for each test function.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(test_db, notifier):
    """
    Create a test client with the database and the email notifier overridden.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_registration_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def admin_token():
    """
    Generate JWT token for an admin with every trip, registration and gift card permission.
    """
    return create_access_token(
        user_id="admin-1",
        user_type="admin",
        permissions=ADMIN_PERMISSIONS,
        custom_claims={"email": "admin@example.com"},
    )


@pytest.fixture(scope="function")
def read_only_token():
    """Admin who may only read"""
    return create_access_token(
        user_id="admin-2",
        user_type="admin",
        permissions=["trip.read", "registration.read", "gift-card.read"],
    )


@pytest.fixture(scope="function")
def non_admin_token():
    """Signed token for a non-admin user holding every permission string"""
    return create_access_token(
        user_id="traveler-1",
        user_type="traveler",
        permissions=ADMIN_PERMISSIONS,
    )


@pytest.fixture(scope="function")
def admin_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture(scope="function")
def test_trip(test_db):
    """Sprinter trip tomorrow"""
    trip = Trip(
        title="Beach Trip",
        date=(utc_now() + timedelta(days=1)).replace(hour=9, minute=0, second=0, microsecond=0),
        driver_name="Alex",
        vehicle_layout="sprinter_15",
        status=TripStatusEnum.PLANNED,
        whatsapp_group_link="https://chat.whatsapp.com/abc123",
    )
    test_db.add(trip)
    test_db.commit()
    test_db.refresh(trip)
    return trip


@pytest.fixture(scope="function")
def small_trip(test_db):
    """Trip in a five seat custom vehicle"""
    trip = Trip(
        title="Wine Tour",
        date=(utc_now() + timedelta(days=2)).replace(microsecond=0),
        vehicle_layout="custom_5",
        status=TripStatusEnum.SCHEDULED,
    )
    test_db.add(trip)
    test_db.commit()
    test_db.refresh(trip)
    return trip


@pytest.fixture(scope="function")
def make_registration(test_db):
    """Factory: persist a registration directly, bypassing the allocation engine"""
    def _make(trip_id, seat_number, **overrides):
        values = {
            "trip_id": trip_id,
            "first_name": "Dana",
            "last_name": "Cole",
            "email": f"dana{seat_number}@example.com",
            "phone": "+1 555 0100",
            "seat_number": seat_number,
            "payment_method": PaymentMethodEnum.ON_TRIP,
            "agreed_to_cancellation_policy": True,
            "agreed_to_waiver": True,
        }
        values.update(overrides)
        registration = Registration(**values)
        test_db.add(registration)
        test_db.commit()
        test_db.refresh(registration)
        return registration
    return _make


@pytest.fixture(scope="function")
def passenger():
    """Factory for one passenger in a public registration payload"""
    def _passenger(seat_number, first_name="Ana"):
        return {
            "first_name": first_name,
            "last_name": "Lee",
            "email": f"{first_name.lower()}{seat_number}@example.com",
            "phone": "+1 555 0100",
            "seat_number": seat_number,
        }
    return _passenger


@pytest.fixture(scope="function")
def ledger(test_db):
    return GiftCardLedger(test_db)


@pytest.fixture(scope="function")
def test_gift_card(ledger):
    """$100.00 card valid for a year"""
    return ledger.issue(
        recipient_name="Sam Rivera",
        sender_name="Jo Rivera",
        amount="100.00",
        expiry_date=utc_now() + timedelta(days=365),
    )
