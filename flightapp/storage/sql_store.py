import logging
from typing import Optional
from uuid import UUID
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from db.db import get_async_session
from db.models import Booking, BookingStatus, Passenger, User, UserRole
from db.repositories.booking_repository import BookingRepository
from db.repositories.user_repository import UserRepository
from .domain import BookingRecord, DuplicateRecord, NewBooking, OwnerRecord

logger = logging.getLogger(__name__)


def _violates_unique(error: IntegrityError, constraint: str, column: str) -> bool:
    # PostgreSQL names the constraint, SQLite names the column
    message = str(error.orig)
    return constraint in message or f"UNIQUE constraint failed: {column}" in message


class SqlBookingStore:
    """Managed-database store (PostgreSQL in production) on SQLAlchemy async sessions."""

    name = "sql"

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker[AsyncSession]):
        self.engine = engine
        self.session_factory = session_factory

    async def get_user_by_email(self, email: str) -> Optional[OwnerRecord]:
        async with get_async_session(self.session_factory) as session:
            user = await UserRepository(session).get_by_email(email)
            return OwnerRecord.model_validate(user) if user else None

    async def create_user(
        self,
        email: str,
        role: UserRole,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> OwnerRecord:
        user = User(email=email, role=role, first_name=first_name, last_name=last_name)
        try:
            async with get_async_session(self.session_factory) as session:
                user = await UserRepository(session).create(user)
                return OwnerRecord.model_validate(user)
        except IntegrityError as error:
            if not _violates_unique(error, "uq_users_email", "users.email"):
                raise
            logger.info("User %s already exists: %s", email, error.orig)
            raise DuplicateRecord("email", email) from error

    async def create_booking(self, pnr: str, user_id: UUID, booking: NewBooking) -> BookingRecord:
        data = booking.model_dump(exclude={"passengers"})
        new_booking = Booking(
            pnr=pnr,
            user_id=user_id,
            status=BookingStatus.pending,
            **data,
        )
        new_booking.passengers = [
            Passenger(position=position, **passenger.model_dump())
            for position, passenger in enumerate(booking.passengers)
        ]

        try:
            async with get_async_session(self.session_factory) as session:
                created = await BookingRepository(session).create(new_booking)
                return BookingRecord.model_validate(created)
        except IntegrityError as error:
            if not _violates_unique(error, "uq_bookings_pnr", "bookings.pnr"):
                logger.error("Booking insert for pnr %s failed: %s", pnr, error.orig)
                raise
            logger.warning("Booking insert rejected for pnr %s: %s", pnr, error.orig)
            raise DuplicateRecord("pnr", pnr) from error

    async def find_booking(self, pnr: str, contact_email: str, user_id: UUID) -> Optional[BookingRecord]:
        async with get_async_session(self.session_factory) as session:
            booking = await BookingRepository(session).find_for_owner(pnr, contact_email, user_id)
            return BookingRecord.model_validate(booking) if booking else None

    async def get_booking(self, booking_id: UUID) -> Optional[BookingRecord]:
        async with get_async_session(self.session_factory) as session:
            booking = await BookingRepository(session).get_by_id(booking_id)
            return BookingRecord.model_validate(booking) if booking else None

    async def update_booking_status(
        self,
        booking_id: UUID,
        status: BookingStatus,
        payment_intent_id: Optional[str] = None,
        expected_status: Optional[BookingStatus] = None,
    ) -> Optional[BookingRecord]:
        async with get_async_session(self.session_factory) as session:
            booking = await BookingRepository(session).update_status(booking_id, status, payment_intent_id, expected_status)
            return BookingRecord.model_validate(booking) if booking else None

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as error:
            logger.error("Database ping failed: %s", error)
            return False

    async def close(self) -> None:
        await self.engine.dispose()
