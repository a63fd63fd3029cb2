import os

# Tests never reach Postgres or RabbitMQ; set before the app modules read the environment
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["BROKER_BACKEND"] = "memory"
os.environ.pop("SENDGRID_API_KEY", None)

from decimal import Decimal
from unittest.mock import AsyncMock, patch
import pytest

from storage import InMemoryBookingStore, NewBooking, PassengerData
from services.booking_service import BookingService
from services.guest_identity_service import GuestIdentityService
from services.payment_service import DemoPaymentGateway


@pytest.fixture(autouse=True)
def mock_kiq():
    with patch("jobs.worker.send_booking_confirmation_task.kiq", new_callable=AsyncMock) as booking_mock, \
         patch("jobs.worker.send_payment_confirmation_task.kiq", new_callable=AsyncMock) as payment_mock:
        yield {"booking": booking_mock, "payment": payment_mock}


@pytest.fixture
def memory_store():
    return InMemoryBookingStore()


@pytest.fixture
def identity_service(memory_store):
    return GuestIdentityService(memory_store)


@pytest.fixture
def booking_service(memory_store, identity_service):
    return BookingService(memory_store, DemoPaymentGateway(), identity_service=identity_service)


def make_booking(contact_email: str = "a@example.com", **overrides) -> NewBooking:
    data = dict(
        contact_email=contact_email,
        contact_phone="+15550100",
        from_airport="LAX",
        to_airport="JFK",
        departure_date="2024-02-15",
        total_amount=Decimal("15.00"),
        terms_accepted=True,
        passengers=[PassengerData(title="Mr", first_name="Test", last_name="User", email=contact_email)],
    )
    data.update(overrides)
    return NewBooking(**data)


@pytest.fixture
def new_booking():
    return make_booking
