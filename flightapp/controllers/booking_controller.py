import logging
from fastapi import Request, HTTPException

from dtos.dtos import (
    BookingDto,
    BookingResponse,
    GuestAccessRequest,
    GuestBookingRequest,
    GuestPaymentConfirmRequest,
    GuestPaymentIntentRequest,
    PaymentIntentResponse,
)
from services.booking_service import BookingService
from services.errors import (
    BookingNotPayable,
    IdentityResolutionFailed,
    InvalidBookingRequest,
    InvalidStatusTransition,
    LocatorCollision,
    VerificationFailed,
)

logger = logging.getLogger(__name__)

NOT_FOUND_OR_DENIED = "Booking not found or access denied"
INTERNAL_ERROR = "Internal server error"


class BookingController:
    """Maps guest booking operations to HTTP; never tells which verification predicate failed."""

    def _service(self, request: Request) -> BookingService:
        return request.app.state.booking_service

    async def create_guest_booking(self, request: Request, body: GuestBookingRequest) -> BookingResponse:
        try:
            booking = await self._service(request).create_guest_booking(body.to_new_booking())
            return BookingResponse(booking=BookingDto.from_record(booking))
        except InvalidBookingRequest as error:
            raise HTTPException(status_code=400, detail=str(error))
        except (IdentityResolutionFailed, LocatorCollision):
            logger.exception("Guest booking could not be created")
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)

    async def lookup_guest_booking(self, request: Request, body: GuestAccessRequest) -> BookingResponse:
        try:
            booking = await self._service(request).lookup_guest_booking(body.pnr, body.contact_email)
            return BookingResponse(booking=BookingDto.from_record(booking))
        except VerificationFailed:
            raise HTTPException(status_code=404, detail=NOT_FOUND_OR_DENIED)
        except IdentityResolutionFailed:
            logger.exception("Guest owner unavailable during lookup")
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)

    async def cancel_guest_booking(self, request: Request, body: GuestAccessRequest) -> BookingResponse:
        try:
            booking = await self._service(request).cancel_guest_booking(body.pnr, body.contact_email)
            return BookingResponse(booking=BookingDto.from_record(booking))
        except VerificationFailed:
            raise HTTPException(status_code=404, detail=NOT_FOUND_OR_DENIED)
        except InvalidStatusTransition as error:
            raise HTTPException(status_code=409, detail=str(error))
        except IdentityResolutionFailed:
            logger.exception("Guest owner unavailable during cancellation")
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)

    async def create_guest_payment_intent(self, request: Request, body: GuestPaymentIntentRequest) -> PaymentIntentResponse:
        try:
            intent = await self._service(request).create_guest_payment_intent(
                body.pnr, body.contact_email, body.amount, body.currency
            )
        except VerificationFailed:
            raise HTTPException(status_code=404, detail=NOT_FOUND_OR_DENIED)
        except BookingNotPayable as error:
            raise HTTPException(status_code=400, detail=str(error))
        except IdentityResolutionFailed:
            logger.exception("Guest owner unavailable during payment")
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)

        return PaymentIntentResponse(
            client_secret=intent.client_secret,
            payment_intent_id=intent.payment_intent_id,
            demo_mode=intent.demo_mode,
            message="Payment will be simulated in demo mode" if intent.demo_mode else None,
        )

    async def confirm_guest_payment(self, request: Request, body: GuestPaymentConfirmRequest) -> BookingResponse:
        try:
            booking = await self._service(request).confirm_guest_payment(
                body.pnr, body.contact_email, body.payment_intent_id
            )
            return BookingResponse(booking=BookingDto.from_record(booking))
        except VerificationFailed:
            raise HTTPException(status_code=404, detail=NOT_FOUND_OR_DENIED)
        except BookingNotPayable as error:
            raise HTTPException(status_code=400, detail=str(error))
        except InvalidStatusTransition as error:
            raise HTTPException(status_code=409, detail=str(error))
        except IdentityResolutionFailed:
            logger.exception("Guest owner unavailable during payment confirmation")
            raise HTTPException(status_code=500, detail=INTERNAL_ERROR)
