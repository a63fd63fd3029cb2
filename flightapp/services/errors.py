class BookingError(Exception):
    """Base class for guest booking failures surfaced to request handlers."""


class IdentityResolutionFailed(BookingError):
    pass


class VerificationFailed(BookingError):
    # One message for every cause: wrong pnr, wrong contact, not a guest booking
    def __init__(self):
        super().__init__("Booking not found or access denied")


class LocatorCollision(BookingError):
    pass


class BookingNotPayable(BookingError):
    pass


class InvalidStatusTransition(BookingError):
    def __init__(self, current, requested):
        super().__init__(f"Cannot move booking from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


class InvalidBookingRequest(BookingError):
    pass


class EmailDeliveryError(Exception):
    pass
