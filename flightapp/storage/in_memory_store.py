import asyncio
import uuid
from typing import Dict, Optional
from uuid import UUID

from db.models import BookingStatus, UserRole, utcnow
from .domain import BookingRecord, DuplicateRecord, NewBooking, OwnerRecord


class InMemoryBookingStore:
    """
    Fallback store used when no database is configured.

    Unique constraints (user email, booking pnr) and the expected status
    of a status update are checked and applied without an await in
    between, so they hold across concurrent handlers.
    Every operation yields to the loop first, like a network round trip.
    """

    name = "memory"

    def __init__(self):
        self.users: Dict[UUID, OwnerRecord] = {}
        self.bookings: Dict[UUID, BookingRecord] = {}
        self._users_by_email: Dict[str, UUID] = {}
        self._bookings_by_pnr: Dict[str, UUID] = {}

    async def get_user_by_email(self, email: str) -> Optional[OwnerRecord]:
        await asyncio.sleep(0)
        user_id = self._users_by_email.get(email)
        if user_id is None:
            return None
        return self.users[user_id].model_copy()

    async def create_user(
        self,
        email: str,
        role: UserRole,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> OwnerRecord:
        await asyncio.sleep(0)
        if email in self._users_by_email:
            raise DuplicateRecord("email", email)

        user = OwnerRecord(
            id=uuid.uuid4(),
            email=email,
            role=role,
            first_name=first_name,
            last_name=last_name,
            created_at=utcnow(),
        )
        self.users[user.id] = user
        self._users_by_email[email] = user.id
        return user.model_copy()

    async def create_booking(self, pnr: str, user_id: UUID, booking: NewBooking) -> BookingRecord:
        await asyncio.sleep(0)
        if pnr in self._bookings_by_pnr:
            raise DuplicateRecord("pnr", pnr)
        if user_id not in self.users:
            raise ValueError(f"Unknown user {user_id}")

        now = utcnow()
        record = BookingRecord(
            id=uuid.uuid4(),
            pnr=pnr,
            user_id=user_id,
            status=BookingStatus.pending,
            created_at=now,
            updated_at=now,
            **booking.model_dump(),
        )
        self.bookings[record.id] = record
        self._bookings_by_pnr[pnr] = record.id
        return record.model_copy(deep=True)

    async def find_booking(self, pnr: str, contact_email: str, user_id: UUID) -> Optional[BookingRecord]:
        await asyncio.sleep(0)
        booking_id = self._bookings_by_pnr.get(pnr)
        if booking_id is None:
            return None
        booking = self.bookings[booking_id]
        if booking.contact_email != contact_email or booking.user_id != user_id:
            return None
        return booking.model_copy(deep=True)

    async def get_booking(self, booking_id: UUID) -> Optional[BookingRecord]:
        await asyncio.sleep(0)
        booking = self.bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    async def update_booking_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        payment_intent_id: Optional[str] = None,
        expected_status: Optional[BookingStatus] = None,
    ) -> Optional[BookingRecord]:
        await asyncio.sleep(0)
        booking = self.bookings.get(booking_id)
        if booking is None:
            return None
        if expected_status is not None and booking.status != expected_status:
            return None

        changes = {"status": status, "updated_at": utcnow()}
        if payment_intent_id is not None:
            changes["payment_intent_id"] = payment_intent_id
        updated = booking.model_copy(update=changes, deep=True)
        self.bookings[booking_id] = updated
        return updated.model_copy(deep=True)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass
