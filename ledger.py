"""Durable record of who holds which slot.

Slot uniqueness is never checked with a read before the write: the insert
itself is guarded by the ``uq_bookings_active_slot`` partial unique index,
so of any number of concurrent inserts for one slot exactly one commits
and the rest surface as :class:`SlotConflict`.
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from errors import BookingNotFound, SlotConflict, StorageError
from models import Booking, BookingStatus

logger = logging.getLogger(__name__)


class ReservationLedger:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_active(self, user_id: int, booking_date: date) -> int:
        statement = (
            select(func.count())
            .select_from(Booking)
            .where(
                Booking.user_id == user_id,
                Booking.booking_date == booking_date,
                Booking.status == BookingStatus.active,
            )
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as exc:
            logger.exception("Counting bookings for user %s on %s failed", user_id, booking_date)
            raise StorageError("Error checking existing bookings") from exc
        return result.scalar_one()

    async def insert_active(self, user_id: int, booking_date: date, time_slot: str) -> Booking:
        """Create one active booking, or raise SlotConflict if the slot is taken."""
        new_booking = Booking(
            user_id=user_id,
            booking_date=booking_date,
            time_slot=time_slot,
        )
        try:
            self.session.add(new_booking)
            await self.session.commit()
            await self.session.refresh(new_booking)
            # Detached, so a rollback for a later slot in the batch can't expire it
            self.session.expunge(new_booking)
        except IntegrityError as exc:
            # The active-slot unique index rejected the row
            await self.session.rollback()
            logger.info("Slot %s on %s already booked, user %s turned away", time_slot, booking_date, user_id)
            raise SlotConflict(booking_date, time_slot) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Booking slot %s on %s failed", time_slot, booking_date)
            raise StorageError(f"Error booking slot {time_slot}") from exc

        logger.info("Booked %s on %s for user %s (id=%s)", time_slot, booking_date, user_id, new_booking.id)
        return new_booking

    async def cancel(self, booking_id: int, user_id: int) -> Booking:
        # Ownership and active status are matched in the same UPDATE, so a
        # foreign or already cancelled booking looks exactly like a missing one.
        statement = (
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.user_id == user_id,
                Booking.status == BookingStatus.active,
            )
            .values(status=BookingStatus.cancelled)
        )
        try:
            result = await self.session.execute(statement)
            if result.rowcount == 0:
                await self.session.rollback()
                raise BookingNotFound(booking_id)
            await self.session.commit()
            booking = await self.session.get(Booking, booking_id, populate_existing=True)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Cancelling booking %s failed", booking_id)
            raise StorageError("Error cancelling booking") from exc

        logger.info("Cancelled booking %s for user %s", booking_id, user_id)
        return booking

    async def list_active(
        self,
        booking_date: Optional[date] = None,
        user_id: Optional[int] = None,
    ) -> List[Booking]:
        """Active bookings on a date, for a user, or for a user on a date."""
        if booking_date is None and user_id is None:
            raise ValueError("list_active needs a date, a user or both")

        statement = select(Booking).where(Booking.status == BookingStatus.active)
        if booking_date is not None:
            statement = statement.where(Booking.booking_date == booking_date)
        if user_id is not None:
            statement = statement.where(Booking.user_id == user_id)
        statement = statement.order_by(Booking.id)

        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as exc:
            logger.exception("Listing bookings failed")
            raise StorageError("Error fetching bookings") from exc
        return list(result.scalars().all())
