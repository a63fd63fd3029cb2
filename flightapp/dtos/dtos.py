from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from db.models import BookingStatus, TripType
from storage import BookingRecord, NewBooking, PassengerData


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Requests ----
class AirportDto(CamelModel):
    code: str = Field(min_length=3, max_length=3)
    name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


class RouteDto(CamelModel):
    from_: AirportDto = Field(alias="from")
    to: AirportDto
    departure_date: str
    return_date: Optional[str] = None
    trip_type: TripType = TripType.oneway


class PassengerDto(CamelModel):
    title: Optional[str] = None
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: Optional[str] = None


class GuestBookingRequest(CamelModel):
    route: RouteDto
    passengers: List[PassengerDto]
    contact_email: str = Field(min_length=3)
    contact_phone: Optional[str] = None
    terms_accepted: bool = False
    total_amount: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)

    def to_new_booking(self) -> NewBooking:
        return NewBooking(
            contact_email=self.contact_email,
            contact_phone=self.contact_phone,
            from_airport=self.route.from_.code.upper(),
            to_airport=self.route.to.code.upper(),
            departure_date=self.route.departure_date,
            return_date=self.route.return_date,
            trip_type=self.route.trip_type,
            total_amount=self.total_amount,
            currency=self.currency,
            terms_accepted=self.terms_accepted,
            passengers=[PassengerData(**p.model_dump()) for p in self.passengers],
        )


class GuestAccessRequest(CamelModel):
    pnr: str
    contact_email: str


class GuestPaymentIntentRequest(GuestAccessRequest):
    amount: Optional[Decimal] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=3)


class GuestPaymentConfirmRequest(GuestAccessRequest):
    payment_intent_id: str = Field(min_length=1)


# ---- Responses ----
class BookingDto(CamelModel):
    id: str
    pnr: str
    status: BookingStatus
    contact_email: str
    contact_phone: Optional[str] = None
    from_airport: str
    to_airport: str
    departure_date: str
    return_date: Optional[str] = None
    trip_type: TripType
    total_amount: float
    currency: str
    payment_intent_id: Optional[str] = None
    passengers: List[PassengerDto]
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: BookingRecord) -> "BookingDto":
        # user_id stays server-side
        return cls(
            id=str(record.id),
            pnr=record.pnr,
            status=record.status,
            contact_email=record.contact_email,
            contact_phone=record.contact_phone,
            from_airport=record.from_airport,
            to_airport=record.to_airport,
            departure_date=record.departure_date,
            return_date=record.return_date,
            trip_type=record.trip_type,
            total_amount=float(record.total_amount),
            currency=record.currency,
            payment_intent_id=record.payment_intent_id,
            passengers=[PassengerDto(**p.model_dump()) for p in record.passengers],
            created_at=record.created_at.isoformat() if record.created_at else None,
        )


class BookingResponse(CamelModel):
    success: bool = True
    booking: BookingDto


class PaymentIntentResponse(CamelModel):
    success: bool = True
    client_secret: str
    payment_intent_id: str
    demo_mode: bool
    message: Optional[str] = None
