# repositories/booking_repository.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from uuid import UUID
from db.models import Booking, BookingStatus
from db.repositories.base_repository import BaseRepository

import logging


logger = logging.getLogger(__name__)

class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: AsyncSession):
        super().__init__(db, Booking)

    async def get_by_id(self, booking_id: UUID) -> Optional[Booking]:
        async with self.db.begin():
            result = await self.db.execute(
                select(Booking)
                .options(selectinload(Booking.passengers))
                .where(Booking.id == booking_id)
            )
            return result.scalar_one_or_none()

    async def find_for_owner(self, pnr: str, contact_email: str, user_id: UUID) -> Optional[Booking]:
        """All three columns must match; the pnr alone never identifies a booking."""
        try:
            async with self.db.begin():
                stmt = (
                    select(Booking)
                    .options(selectinload(Booking.passengers))
                    .where(
                        Booking.pnr == pnr,
                        Booking.contact_email == contact_email,
                        Booking.user_id == user_id,
                    )
                )
                result = await self.db.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception("Error while fetching booking %s", pnr)
            raise

    async def update_status(
        self,
        booking_id: UUID,
        new_status: BookingStatus,
        payment_intent_id: Optional[str] = None,
        expected_status: Optional[BookingStatus] = None,
    ) -> Optional[Booking]:
        """
        Set the status in a single UPDATE. With expected_status the row only
        changes if it still holds that status; otherwise nothing is written
        and None is returned.
        """
        values = {"status": new_status}
        if payment_intent_id is not None:
            values["payment_intent_id"] = payment_intent_id

        stmt = update(Booking).where(Booking.id == booking_id)
        if expected_status is not None:
            stmt = stmt.where(Booking.status == expected_status)

        try:
            async with self.db.begin():
                result = await self.db.execute(
                    stmt.values(**values).execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    return None

                result = await self.db.execute(
                    select(Booking)
                    .options(selectinload(Booking.passengers))
                    .where(Booking.id == booking_id)
                )
                return result.scalar_one()
        except SQLAlchemyError:
            logger.exception("Error while updating booking %s", booking_id)
            raise
