import asyncio
from decimal import Decimal
from unittest.mock import patch
import pytest

import config.conf as conf
from db.models import BookingStatus, UserRole
from services.booking_service import BookingService
from services.errors import (
    BookingNotPayable,
    InvalidBookingRequest,
    InvalidStatusTransition,
    LocatorCollision,
    VerificationFailed,
)
from services.payment_service import DemoPaymentGateway


async def create_with_locator(booking_service, new_booking, locator="AB12XY", contact="a@example.com"):
    with patch("services.booking_service.generate_locator", return_value=locator):
        return await booking_service.create_guest_booking(new_booking(contact))


async def pay(booking_service, pnr="AB12XY", contact="a@example.com"):
    intent = await booking_service.create_guest_payment_intent(pnr, contact)
    return await booking_service.confirm_guest_payment(pnr, contact, intent.payment_intent_id)


class TestCreateGuestBooking:

    @pytest.mark.asyncio
    async def test_creates_pending_booking_owned_by_guest(self, booking_service, identity_service, new_booking, mock_kiq):
        booking = await booking_service.create_guest_booking(new_booking("a@example.com"))

        guest_id = await identity_service.resolve_guest_owner()
        assert booking.user_id == guest_id
        assert booking.status == BookingStatus.pending
        assert booking.contact_email == "a@example.com"
        assert len(booking.pnr) == 6
        assert booking.passengers[0].last_name == "User"
        mock_kiq["booking"].assert_called_once()
        assert mock_kiq["booking"].call_args.args[0]["pnr"] == booking.pnr

    @pytest.mark.asyncio
    async def test_regenerates_locator_on_collision(self, booking_service, memory_store, new_booking):
        await create_with_locator(booking_service, new_booking, "AB12XY")

        with patch("services.booking_service.generate_locator", side_effect=["AB12XY", "AB12XY", "CD34ZW"]) as gen:
            booking = await booking_service.create_guest_booking(new_booking("b@example.com"))

        assert booking.pnr == "CD34ZW"
        assert gen.call_count == 3
        assert len(memory_store.bookings) == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, memory_store, identity_service, new_booking):
        service = BookingService(memory_store, DemoPaymentGateway(), identity_service, locator_max_attempts=3)
        await create_with_locator(service, new_booking, "AB12XY")

        with patch("services.booking_service.generate_locator", return_value="AB12XY") as gen:
            with pytest.raises(LocatorCollision):
                await service.create_guest_booking(new_booking("b@example.com"))

        assert gen.call_count == 3
        assert len(memory_store.bookings) == 1

    @pytest.mark.asyncio
    async def test_rejects_reserved_contact_address(self, booking_service, new_booking):
        with pytest.raises(InvalidBookingRequest):
            await booking_service.create_guest_booking(new_booking(conf.GUEST_EMAIL.upper()))

    @pytest.mark.asyncio
    async def test_requires_terms(self, booking_service, new_booking, mock_kiq):
        with pytest.raises(InvalidBookingRequest):
            await booking_service.create_guest_booking(new_booking(terms_accepted=False))
        mock_kiq["booking"].assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_a_passenger(self, booking_service, new_booking):
        with pytest.raises(InvalidBookingRequest):
            await booking_service.create_guest_booking(new_booking(passengers=[]))


class TestVerifyGuestAccess:

    @pytest.mark.asyncio
    async def test_matching_locator_and_contact(self, booking_service, new_booking):
        created = await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")

        booking = await booking_service.verify_guest_access("AB12XY", "a@example.com")

        assert booking.id == created.id

    @pytest.mark.asyncio
    async def test_wrong_contact_fails(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")

        with pytest.raises(VerificationFailed):
            await booking_service.verify_guest_access("AB12XY", "wrong@example.com")

    @pytest.mark.asyncio
    async def test_wrong_locator_fails(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")

        with pytest.raises(VerificationFailed):
            await booking_service.verify_guest_access("ZZ99ZZ", "a@example.com")

    @pytest.mark.asyncio
    async def test_failures_are_indistinguishable(self, booking_service, memory_store, new_booking):
        await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")
        user = await memory_store.create_user("member@example.com", UserRole.customer)
        await memory_store.create_booking("MEMBER", user.id, new_booking("member@example.com"))

        messages = set()
        for pnr, contact in [("AB12XY", "x@example.com"), ("ZZ99ZZ", "a@example.com"), ("MEMBER", "member@example.com")]:
            with pytest.raises(VerificationFailed) as exc_info:
                await booking_service.verify_guest_access(pnr, contact)
            messages.add(str(exc_info.value))

        assert messages == {"Booking not found or access denied"}

    @pytest.mark.asyncio
    async def test_authenticated_booking_never_returned(self, booking_service, memory_store, new_booking):
        user = await memory_store.create_user("member@example.com", UserRole.customer)
        await memory_store.create_booking("QW12ER", user.id, new_booking("member@example.com"))

        with pytest.raises(VerificationFailed):
            await booking_service.verify_guest_access("QW12ER", "member@example.com")

    @pytest.mark.asyncio
    async def test_match_is_exact(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")

        for pnr, contact in [("ab12xy", "a@example.com"), ("AB12XY", "A@example.com"), ("AB12XY", " a@example.com"), ("", ""), ("AB12XY", "")]:
            with pytest.raises(VerificationFailed):
                await booking_service.verify_guest_access(pnr, contact)

    @pytest.mark.asyncio
    async def test_repeated_verification_is_stable(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")

        first = await booking_service.verify_guest_access("AB12XY", "a@example.com")
        second = await booking_service.verify_guest_access("AB12XY", "a@example.com")

        assert first == second

    @pytest.mark.asyncio
    async def test_failed_verification_changes_nothing(self, booking_service, memory_store, new_booking):
        await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")
        before = {k: v.model_copy(deep=True) for k, v in memory_store.bookings.items()}

        with pytest.raises(VerificationFailed):
            await booking_service.cancel_guest_booking("AB12XY", "wrong@example.com")

        assert memory_store.bookings == before


class TestPaymentsAndStatus:

    @pytest.mark.asyncio
    async def test_payment_intent_for_pending_booking(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)

        intent = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")

        assert intent.demo_mode is True
        assert intent.amount == 1500
        assert intent.currency == "USD"
        assert intent.payment_intent_id.startswith("pi_demo_")
        assert intent.client_secret.endswith("_secret")

    @pytest.mark.asyncio
    async def test_payment_intent_amount_override(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)

        intent = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com", Decimal("19.995"), "EUR")

        assert intent.amount == 2000
        assert intent.currency == "EUR"

    @pytest.mark.asyncio
    async def test_payment_intent_rejects_non_positive_amount(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)

        with pytest.raises(BookingNotPayable):
            await booking_service.create_guest_payment_intent("AB12XY", "a@example.com", Decimal("0"))

    @pytest.mark.asyncio
    async def test_payment_intent_requires_verification(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)

        with pytest.raises(VerificationFailed):
            await booking_service.create_guest_payment_intent("AB12XY", "wrong@example.com")

    @pytest.mark.asyncio
    async def test_confirm_payment(self, booking_service, new_booking, mock_kiq):
        await create_with_locator(booking_service, new_booking)
        intent = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")

        booking = await booking_service.confirm_guest_payment("AB12XY", "a@example.com", intent.payment_intent_id)

        assert booking.status == BookingStatus.confirmed
        assert booking.payment_intent_id == intent.payment_intent_id
        mock_kiq["payment"].assert_called_once()

    @pytest.mark.asyncio
    async def test_confirm_rejects_unknown_intent(self, booking_service, memory_store, new_booking, mock_kiq):
        created = await create_with_locator(booking_service, new_booking)

        with pytest.raises(BookingNotPayable):
            await booking_service.confirm_guest_payment("AB12XY", "a@example.com", "pi_demo_1")

        assert memory_store.bookings[created.id].status == BookingStatus.pending
        mock_kiq["payment"].assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_rejects_intent_of_another_booking(self, booking_service, memory_store, new_booking):
        created = await create_with_locator(booking_service, new_booking, "AB12XY", "a@example.com")
        await create_with_locator(booking_service, new_booking, "CD34ZW", "b@example.com")
        other_intent = await booking_service.create_guest_payment_intent("CD34ZW", "b@example.com")

        with pytest.raises(BookingNotPayable):
            await booking_service.confirm_guest_payment("AB12XY", "a@example.com", other_intent.payment_intent_id)

        assert memory_store.bookings[created.id].status == BookingStatus.pending

    @pytest.mark.asyncio
    async def test_confirm_rejects_unsettled_intent(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)
        intent = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")
        gateway = booking_service.payment_gateway
        gateway.intents[intent.payment_intent_id].status = "requires_payment_method"

        with pytest.raises(BookingNotPayable):
            await booking_service.confirm_guest_payment("AB12XY", "a@example.com", intent.payment_intent_id)

    @pytest.mark.asyncio
    async def test_confirmed_booking_is_not_payable(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)
        await pay(booking_service)

        with pytest.raises(BookingNotPayable):
            await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")

    @pytest.mark.asyncio
    async def test_cancel_then_no_more_transitions(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)
        await pay(booking_service)

        cancelled = await booking_service.cancel_guest_booking("AB12XY", "a@example.com")
        assert cancelled.status == BookingStatus.cancelled

        with pytest.raises(InvalidStatusTransition):
            await booking_service.cancel_guest_booking("AB12XY", "a@example.com")
        with pytest.raises(InvalidStatusTransition):
            await booking_service.confirm_guest_payment("AB12XY", "a@example.com", "pi_demo_2")

    @pytest.mark.asyncio
    async def test_cancelled_booking_still_readable(self, booking_service, new_booking):
        await create_with_locator(booking_service, new_booking)
        await booking_service.cancel_guest_booking("AB12XY", "a@example.com")

        booking = await booking_service.lookup_guest_booking("AB12XY", "a@example.com")

        assert booking.status == BookingStatus.cancelled


class TestConcurrentTransitions:

    @pytest.mark.asyncio
    async def test_cancel_and_confirm_race_has_one_winner(self, booking_service, memory_store, new_booking, mock_kiq):
        created = await create_with_locator(booking_service, new_booking)
        intent = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")

        results = await asyncio.gather(
            booking_service.cancel_guest_booking("AB12XY", "a@example.com"),
            booking_service.confirm_guest_payment("AB12XY", "a@example.com", intent.payment_intent_id),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], InvalidStatusTransition)
        assert memory_store.bookings[created.id].status == winners[0].status
        assert mock_kiq["payment"].call_count == (1 if winners[0].status == BookingStatus.confirmed else 0)

    @pytest.mark.asyncio
    async def test_cancelled_booking_is_not_confirmed_by_a_racing_payment(self, booking_service, memory_store, new_booking):
        created = await create_with_locator(booking_service, new_booking)
        intent = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")

        cancelled, confirm_error = await asyncio.gather(
            booking_service.cancel_guest_booking("AB12XY", "a@example.com"),
            booking_service.confirm_guest_payment("AB12XY", "a@example.com", intent.payment_intent_id),
            return_exceptions=True,
        )

        assert cancelled.status == BookingStatus.cancelled
        assert isinstance(confirm_error, InvalidStatusTransition)
        assert memory_store.bookings[created.id].status == BookingStatus.cancelled

    @pytest.mark.asyncio
    async def test_double_confirm_confirms_once(self, booking_service, memory_store, new_booking, mock_kiq):
        created = await create_with_locator(booking_service, new_booking)
        first = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")
        second = await booking_service.create_guest_payment_intent("AB12XY", "a@example.com")

        results = await asyncio.gather(
            booking_service.confirm_guest_payment("AB12XY", "a@example.com", first.payment_intent_id),
            booking_service.confirm_guest_payment("AB12XY", "a@example.com", second.payment_intent_id),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        assert len(winners) == 1
        assert sum(isinstance(r, InvalidStatusTransition) for r in results) == 1
        assert memory_store.bookings[created.id].payment_intent_id == winners[0].payment_intent_id
        mock_kiq["payment"].assert_called_once()
