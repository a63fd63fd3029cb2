from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Protocol
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from db.models import BookingStatus, UserRole, TripType


class DuplicateRecord(Exception):
    """A unique constraint (user email, booking locator) rejected an insert."""

    def __init__(self, field: str, value: str):
        super().__init__(f"{field} already exists: {value}")
        self.field = field
        self.value = value


class StorageUnavailable(Exception):
    pass


# Pydantic records handed out by every store, never ORM objects
class OwnerRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None


class PassengerData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: Optional[str] = None
    first_name: str
    last_name: str
    email: Optional[str] = None


class NewBooking(BaseModel):
    contact_email: str
    contact_phone: Optional[str] = None
    from_airport: str
    to_airport: str
    departure_date: str
    return_date: Optional[str] = None
    trip_type: TripType = TripType.oneway
    total_amount: Decimal = Decimal("0")
    currency: str = "USD"
    terms_accepted: bool = False
    passengers: List[PassengerData] = Field(default_factory=list)


class BookingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    pnr: str
    user_id: UUID
    status: BookingStatus
    contact_email: str
    contact_phone: Optional[str] = None
    from_airport: str
    to_airport: str
    departure_date: str
    return_date: Optional[str] = None
    trip_type: TripType
    total_amount: Decimal
    currency: str
    terms_accepted: bool
    payment_intent_id: Optional[str] = None
    passengers: List[PassengerData] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BookingStore(Protocol):

    name: str

    async def get_user_by_email(self, email: str) -> Optional[OwnerRecord]:
        ...

    async def create_user(
        self,
        email: str,
        role: UserRole,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> OwnerRecord:
        ...

    async def create_booking(self, pnr: str, user_id: UUID, booking: NewBooking) -> BookingRecord:
        ...

    async def find_booking(self, pnr: str, contact_email: str, user_id: UUID) -> Optional[BookingRecord]:
        ...

    async def get_booking(self, booking_id: UUID) -> Optional[BookingRecord]:
        ...

    async def update_booking_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        payment_intent_id: Optional[str] = None,
        expected_status: Optional[BookingStatus] = None,
    ) -> Optional[BookingRecord]:
        ...

    async def ping(self) -> bool:
        ...

    async def close(self) -> None:
        ...
