"""Shared test fixtures and helpers."""

from datetime import date, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from wabco_booking.api.app import create_app
from wabco_booking.api.dependencies import get_db, get_notification_dispatcher
from wabco_booking.db.database import init_db
from wabco_booking.db.models import Booking, Branch
from wabco_booking.schemas.draft_schema import (
    BookingDraft,
    CustomerInfo,
    RequestSource,
    RequestType,
    SubjectKind,
    Vehicle,
)
from wabco_booking.tools.notifications import NotificationResult

TODAY = date.today()
FUTURE_DATE = TODAY + timedelta(days=3)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def make_branch(db_session):
    def _make(**overrides) -> Branch:
        values = {
            "name": "TirePro Auto Care",
            "address": "Al Quoz Industrial Area 3, Dubai, UAE",
            "phone": "+971 04 746 8773",
            "working_hours": "Mon-Sat 09:00-18:00",
            "lat": 25.1320,
            "lng": 55.2350,
        }
        values.update(overrides)
        branch = Branch(**values)
        db_session.add(branch)
        db_session.commit()
        db_session.refresh(branch)
        return branch

    return _make


@pytest.fixture
def branch(make_branch):
    return make_branch()


@pytest.fixture
def make_booking(db_session):
    def _make(branch: Branch, **overrides) -> Booking:
        values = {
            "car_year": "2021",
            "car_make": "Toyota",
            "car_model": "Camry",
            "services": "Wheel alignment",
            "branch_id": branch.id,
            "branch_name": branch.name,
            "booking_date": FUTURE_DATE,
            "booking_time": "10:00",
            "customer_name": "Amira Haddad",
            "customer_email": "amira@example.com",
            "customer_phone": "+971 50 123 4567",
            "request_type": RequestType.BOOKING.value,
            "request_source": RequestSource.SERVICE.value,
            "service_id": 7,
            "quantity": 1,
            "is_active": True,
        }
        values.update(overrides)
        booking = Booking(**values)
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking

    return _make


def make_draft(
    branch_id: Optional[int] = 1,
    request_type: RequestType = RequestType.BOOKING,
    request_source: RequestSource = RequestSource.SERVICE,
    scheduled_date: Optional[date] = FUTURE_DATE,
    scheduled_time: Optional[str] = "10:00",
    **overrides,
) -> BookingDraft:
    """A draft that passes every step validator for its request type."""
    if request_type == RequestType.QUOTATION:
        scheduled_date = None
        scheduled_time = None
    values = {
        "request_type": request_type,
        "request_source": request_source,
        "subject_kind": SubjectKind(request_source.value),
        "subject_id": 7,
        "quantity": 1,
        "services": "Wheel alignment",
        "vehicle": Vehicle(year="2021", make="Toyota", model="Camry"),
        "branch_id": branch_id,
        "branch_name": "TirePro Auto Care",
        "scheduled_date": scheduled_date,
        "scheduled_time": scheduled_time,
        "customer": CustomerInfo(
            name="Amira Haddad", email="amira@example.com", phone="+971 50 123 4567"
        ),
    }
    values.update(overrides)
    return BookingDraft(**values)


def draft_payload(branch_id: int, **overrides) -> dict:
    """camelCase JSON body for POST /api/bookings."""
    payload = {
        "requestType": "booking",
        "requestSource": "service",
        "subjectId": 7,
        "quantity": 1,
        "services": "Wheel alignment",
        "vehicle": {"year": "2021", "make": "Toyota", "model": "Camry"},
        "branchId": branch_id,
        "branchName": "TirePro Auto Care",
        "scheduledDate": FUTURE_DATE.isoformat(),
        "scheduledTime": "10:00",
        "customer": {
            "name": "Amira Haddad",
            "email": "amira@example.com",
            "phone": "+971 50 123 4567",
        },
    }
    payload.update(overrides)
    return payload


class FakeDispatcher:
    """Records notification requests instead of sending mail."""

    def __init__(self) -> None:
        self.sent: list[tuple] = []

    async def send_booking_notification(self, kind, payload) -> NotificationResult:
        self.sent.append((kind, payload))
        return NotificationResult(customer_sent=True, admin_sent=True)


@pytest.fixture
def fake_dispatcher():
    return FakeDispatcher()


def _build_client(db_session, dispatcher, admin_api_key: str) -> TestClient:
    app = create_app(admin_api_key=admin_api_key, init_schema=False)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    return TestClient(app)


@pytest.fixture
def client(db_session, fake_dispatcher):
    return _build_client(db_session, fake_dispatcher, admin_api_key="")


@pytest.fixture
def secured_client(db_session, fake_dispatcher):
    return _build_client(db_session, fake_dispatcher, admin_api_key="s3cret")
