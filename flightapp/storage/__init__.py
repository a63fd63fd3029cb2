from .domain import (
    BookingRecord,
    BookingStore,
    DuplicateRecord,
    NewBooking,
    OwnerRecord,
    PassengerData,
    StorageUnavailable,
)
from .in_memory_store import InMemoryBookingStore
from .sql_store import SqlBookingStore
from .factory import build_store

__all__ = [
    "BookingRecord",
    "BookingStore",
    "DuplicateRecord",
    "NewBooking",
    "OwnerRecord",
    "PassengerData",
    "StorageUnavailable",
    "InMemoryBookingStore",
    "SqlBookingStore",
    "build_store",
]

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
