from enum import Enum
from typing import Optional
from datetime import date, datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import Index, text

# Fixed one-hour slots, shared by request validation and the coordinator
TIME_SLOTS = (
    "08:00 - 09:00",
    "09:00 - 10:00",
    "10:00 - 11:00",
    "11:00 - 12:00",
    "12:00 - 13:00",
    "13:00 - 14:00",
    "14:00 - 15:00",
    "15:00 - 16:00",
    "16:00 - 17:00",
    "17:00 - 18:00",
)

MAX_SLOTS_PER_DAY = 2


class BookingStatus(str, Enum):
    active = "active"
    cancelled = "cancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (
        # CRITICAL: Database-level protection against double booking.
        # Only active rows take part, so a cancelled slot can be booked again.
        Index(
            "uq_bookings_active_slot",
            "booking_date",
            "time_slot",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    booking_date: date = Field(index=True)
    time_slot: str
    status: BookingStatus = Field(default=BookingStatus.active)
    created_at: datetime = Field(default_factory=_utcnow)
