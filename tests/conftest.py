import os
from collections import namedtuple
from decimal import Decimal
from itertools import count
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient
from redis import Redis
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set testing environment before the app reads its settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from healthme.main import app
from healthme.core.database import Base, get_db, get_redis, import_models
from healthme.core.security import UserRole, create_access_token
from healthme.models.patient import Patient
from healthme.models.practitioner import Practitioner
from healthme.models.user import User
from healthme.services.billing_client import BillingClient, get_billing_client

import_models()

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db
app.dependency_overrides[get_billing_client] = lambda: BillingClient(None)

# profile_id is the Patient/Practitioner id (None for admins)
Party = namedtuple("Party", ["user_id", "profile_id", "headers"])

class Seeder:
    """Creates users with linked profiles and bearer headers for them."""

    def __init__(self, db):
        self.db = db
        self._seq = count(1)

    def _user(self, role: UserRole) -> User:
        user = User(email=f"{role.value}{next(self._seq)}@example.com", role=role, is_active=True)
        self.db.add(user)
        self.db.flush()
        return user

    @staticmethod
    def headers_for(user: User) -> dict:
        token = create_access_token({"sub": user.id, "email": user.email, "role": user.role.value})
        return {"Authorization": f"Bearer {token}"}

    def patient(self, full_name: str = "Test Patient") -> Party:
        user = self._user(UserRole.PATIENT)
        profile = Patient(user_id=user.id, full_name=full_name, email=user.email)
        self.db.add(profile)
        self.db.commit()
        return Party(user.id, profile.id, self.headers_for(user))

    def practitioner(self, full_name: str = "Dr. Test", fee: Decimal = Decimal("50.00"), is_active: bool = True) -> Party:
        user = self._user(UserRole.PRACTITIONER)
        profile = Practitioner(
            user_id=user.id,
            full_name=full_name,
            email=user.email,
            specialization="General Practice",
            consultation_fee=fee,
            is_active=is_active,
        )
        self.db.add(profile)
        self.db.commit()
        return Party(user.id, profile.id, self.headers_for(user))

    def admin(self) -> Party:
        user = self._user(UserRole.ADMIN)
        self.db.commit()
        return Party(user.id, None, self.headers_for(user))

@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db(test_db):
    session = TestingSessionLocal()
    yield session
    session.close()

@pytest.fixture
def seed(db):
    return Seeder(db)

@pytest.fixture
def redis_mock():
    """In-memory counter standing in for the Redis rate-limit keys."""
    counters = {}

    def incr(key):
        counters[key] = counters.get(key, 0) + 1
        return counters[key]

    mock = Mock(spec=Redis)
    mock.incr.side_effect = incr
    mock.expire.return_value = True
    return mock

@pytest.fixture
def client(test_db, redis_mock):
    app.dependency_overrides[get_redis] = lambda: redis_mock
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.pop(get_redis, None)

def booking(practitioner_id, slot_date="2024-05-01", time_slot="10:00", **extra):
    body = {
        "practitionerId": practitioner_id,
        "date": slot_date,
        "timeSlot": time_slot,
        "mode": "virtual",
        "reason": "Persistent headache",
    }
    body.update(extra)
    return body

SOAP_NOTE = {
    "subjective": "Headache for three days, worse in the morning.",
    "objective": "BP 128/82, neuro exam unremarkable.",
    "assessment": "Tension-type headache.",
    "plan": "Hydration, ibuprofen as needed, follow up in two weeks.",
}
