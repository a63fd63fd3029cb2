from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
    Enum as SQLAEnum,
)
from sqlalchemy.orm import (
    declarative_base,
    Mapped,
    mapped_column,
    relationship,
)
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
import uuid
from typing import Protocol, Optional, List


Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---- Protocol ----
class HasId(Protocol):
    id: Mapped[uuid.UUID]

# ---- Enums ----
class BookingStatus(str, PyEnum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"

class UserRole(str, PyEnum):
    guest = "guest"
    customer = "customer"
    admin = "admin"

class TripType(str, PyEnum):
    oneway = "oneway"
    roundtrip = "roundtrip"

# ---- Models ----
class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # unique: the guest owner is resolved by this column
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        SQLAEnum(UserRole, name="user_role", create_constraint=True),
        default=UserRole.customer,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    bookings: Mapped[List["Booking"]] = relationship(back_populates="user")


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("pnr", name="uq_bookings_pnr"),
        Index("ix_bookings_guest_lookup", "pnr", "contact_email"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pnr: Mapped[str] = mapped_column(String(6), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), index=True, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        SQLAEnum(BookingStatus, name="booking_status", create_constraint=True),
        default=BookingStatus.pending,
        nullable=False
    )
    contact_email: Mapped[str] = mapped_column(String(320), nullable=False)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    from_airport: Mapped[str] = mapped_column(String(3))
    to_airport: Mapped[str] = mapped_column(String(3))
    departure_date: Mapped[str] = mapped_column(String(10))
    return_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    trip_type: Mapped[TripType] = mapped_column(
        SQLAEnum(TripType, name="trip_type", create_constraint=True),
        default=TripType.oneway,
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    terms_accepted: Mapped[bool] = mapped_column(default=False)
    payment_intent_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user: Mapped["User"] = relationship(back_populates="bookings")
    passengers: Mapped[List["Passenger"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Passenger.position",
    )


class Passenger(Base):
    __tablename__ = "passengers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("bookings.id"), index=True)
    position: Mapped[int] = mapped_column(default=0)
    title: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)

    booking: Mapped["Booking"] = relationship(back_populates="passengers")
