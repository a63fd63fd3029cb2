from decimal import Decimal
from typing import Dict, Optional, Set
import asyncio
import logging

import config.conf as conf
from db.models import BookingStatus
from storage import BookingRecord, BookingStore, DuplicateRecord, NewBooking
from services.errors import (
    BookingNotPayable,
    InvalidBookingRequest,
    InvalidStatusTransition,
    LocatorCollision,
    VerificationFailed,
)
from services.guest_identity_service import GuestIdentityService
from services.locator import generate_locator
from services.payment_service import PAYMENT_SUCCEEDED, PaymentGateway, PaymentIntent, to_minor_units

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
    BookingStatus.pending: {BookingStatus.confirmed, BookingStatus.cancelled},
    BookingStatus.confirmed: {BookingStatus.cancelled},
    BookingStatus.cancelled: set(),
}


class BookingService:

        def __init__(
            self,
            store: BookingStore,
            payment_gateway: PaymentGateway,
            identity_service: Optional[GuestIdentityService] = None,
            locator_max_attempts: int = 5,
        ):
            self.store = store
            self.payment_gateway = payment_gateway
            self.identity_service = identity_service or GuestIdentityService(store)
            self.locator_max_attempts = locator_max_attempts

        async def create_guest_booking(self, booking: NewBooking) -> BookingRecord:
            if booking.contact_email.strip().lower() == self.identity_service.guest_email:
                raise InvalidBookingRequest("Contact email is reserved")
            if not booking.terms_accepted:
                raise InvalidBookingRequest("Terms and conditions must be accepted")
            if not booking.passengers:
                raise InvalidBookingRequest("At least one passenger is required")

            owner_id = await self.identity_service.resolve_guest_owner()

            new_booking = None
            for attempt in range(1, self.locator_max_attempts + 1):
                pnr = generate_locator()
                try:
                    new_booking = await self.store.create_booking(pnr, owner_id, booking)
                    break
                except DuplicateRecord:
                    logger.warning("Locator %s already taken (attempt %d/%d)", pnr, attempt, self.locator_max_attempts)

            if new_booking is None:
                raise LocatorCollision(f"No free locator after {self.locator_max_attempts} attempts")

            logger.info("Guest booking %s created", new_booking.pnr)

            from jobs.worker import send_booking_confirmation_task  # Lazy import to break circular import dependency
            # Fire-and-forget: enqueue task, don't await
            asyncio.create_task(send_booking_confirmation_task.kiq(new_booking.model_dump(mode="json")))

            return new_booking

        async def verify_guest_access(self, pnr: str, contact_email: str) -> BookingRecord:
            """
            Return the guest booking matching pnr, contact address and the
            guest owner, or raise VerificationFailed without saying which
            of the three did not match.
            """
            owner_id = await self.identity_service.resolve_guest_owner()

            booking = None
            if pnr and contact_email:
                booking = await self.store.find_booking(pnr, contact_email, owner_id)

            if booking is None:
                logger.info("Guest verification failed for locator %s", pnr)
                raise VerificationFailed()

            return booking

        async def lookup_guest_booking(self, pnr: str, contact_email: str) -> BookingRecord:
            return await self.verify_guest_access(pnr, contact_email)

        async def create_guest_payment_intent(
            self,
            pnr: str,
            contact_email: str,
            amount: Optional[Decimal] = None,
            currency: Optional[str] = None,
        ) -> PaymentIntent:
            booking = await self.verify_guest_access(pnr, contact_email)

            if booking.status != BookingStatus.pending:
                raise BookingNotPayable("Booking is not eligible for payment")

            charge = booking.total_amount if amount is None else amount
            if charge <= 0:
                raise BookingNotPayable("Payment amount must be positive")

            return await self.payment_gateway.create_payment_intent(
                to_minor_units(charge),
                currency or booking.currency or conf.DEFAULT_CURRENCY,
                {
                    "bookingId": str(booking.id),
                    "pnr": booking.pnr,
                    "contactEmail": booking.contact_email,
                    "guestBooking": True,
                },
            )

        async def confirm_guest_payment(self, pnr: str, contact_email: str, payment_intent_id: str) -> BookingRecord:
            booking = await self.verify_guest_access(pnr, contact_email)
            if BookingStatus.confirmed not in ALLOWED_TRANSITIONS[booking.status]:
                raise InvalidStatusTransition(booking.status, BookingStatus.confirmed)

            intent = await self.payment_gateway.retrieve_payment_intent(payment_intent_id)
            if intent is None or intent.metadata.get("bookingId") != str(booking.id):
                logger.warning("Payment intent %s does not belong to booking %s", payment_intent_id, booking.pnr)
                raise BookingNotPayable("Payment not found for this booking")
            if intent.status != PAYMENT_SUCCEEDED:
                raise BookingNotPayable("Payment has not succeeded")

            confirmed = await self._transition(booking, BookingStatus.confirmed, payment_intent_id)

            from jobs.worker import send_payment_confirmation_task  # Lazy import to break circular import dependency
            asyncio.create_task(send_payment_confirmation_task.kiq(confirmed.model_dump(mode="json")))

            return confirmed

        async def cancel_guest_booking(self, pnr: str, contact_email: str) -> BookingRecord:
            booking = await self.verify_guest_access(pnr, contact_email)
            return await self._transition(booking, BookingStatus.cancelled)

        async def _transition(
            self,
            booking: BookingRecord,
            status: BookingStatus,
            payment_intent_id: Optional[str] = None,
        ) -> BookingRecord:
            if status not in ALLOWED_TRANSITIONS[booking.status]:
                raise InvalidStatusTransition(booking.status, status)

            # The store only writes if the status is still the one checked above
            updated = await self.store.update_booking_status(
                booking.id, status, payment_intent_id, expected_status=booking.status
            )
            if updated is None:
                current = await self.store.get_booking(booking.id)
                if current is None:
                    # Verified a moment ago; only an external delete gets here
                    raise VerificationFailed()
                logger.info("Booking %s moved to %s concurrently", booking.pnr, current.status.value)
                raise InvalidStatusTransition(current.status, status)

            logger.info("Booking %s moved from %s to %s", booking.pnr, booking.status.value, status.value)
            return updated
