"""Failures raised by the reservation ledger and the booking coordinator."""

from datetime import date


class ReservationError(Exception):
    """Base class for reservation errors"""


class InvalidRequest(ReservationError):
    """Malformed batch request. Fix the request; retrying won't help."""


class CapacityExceeded(ReservationError):
    def __init__(self, existing: int, requested: int, limit: int):
        self.existing = existing
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"You can only book {limit} slots per day. "
            f"You already have {existing} slot(s) booked."
        )


class SlotConflict(ReservationError):
    def __init__(self, booking_date: date, time_slot: str):
        self.booking_date = booking_date
        self.time_slot = time_slot
        super().__init__(f"Slot {time_slot} is already booked")


class BookingNotFound(ReservationError):
    # Raised for missing, foreign and already cancelled bookings alike
    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__("Booking not found")


class StorageError(ReservationError):
    """Infrastructure failure. Not retried here; the caller may try again later."""
