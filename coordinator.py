"""Batch slot booking: one user, one date, one or two slots.

The daily cap is checked once, up front, and the whole batch is refused if
it would be exceeded. Slots are then inserted one by one; each insert
commits on its own, so a conflict on one slot never undoes another.

Two batches from the same user arriving at the same moment can both pass
the cap check and together leave that user with more than
``MAX_SLOTS_PER_DAY`` active bookings. Slot uniqueness is not affected by
this; it is enforced by the ledger on every insert.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Sequence

from errors import CapacityExceeded, InvalidRequest, SlotConflict, StorageError
from ledger import ReservationLedger
from models import MAX_SLOTS_PER_DAY, TIME_SLOTS, Booking

logger = logging.getLogger(__name__)


class BatchOutcome(str, Enum):
    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL_SUCCESS = "partial_success"
    ALL_FAILED = "all_failed"


class FailureReason(str, Enum):
    CONFLICT = "conflict"
    STORAGE_ERROR = "storage_error"


@dataclass
class SlotFailure:
    time_slot: str
    reason: FailureReason
    message: str


@dataclass
class BatchResult:
    outcome: BatchOutcome
    booked: List[Booking] = field(default_factory=list)
    failures: List[SlotFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.booked)


def validate_slots(requested_slots: Sequence[str]) -> None:
    if not requested_slots or len(requested_slots) > MAX_SLOTS_PER_DAY:
        raise InvalidRequest(f"You must book 1-{MAX_SLOTS_PER_DAY} slots")

    unknown = [slot for slot in requested_slots if slot not in TIME_SLOTS]
    if unknown:
        raise InvalidRequest(f"Unknown time slot(s): {', '.join(map(str, unknown))}")

    if len(set(requested_slots)) != len(requested_slots):
        raise InvalidRequest("The same slot was requested more than once")


async def book(
    ledger: ReservationLedger,
    user_id: int,
    booking_date: date,
    requested_slots: Sequence[str],
) -> BatchResult:
    # Malformed requests never reach storage
    validate_slots(requested_slots)

    existing = await ledger.count_active(user_id, booking_date)
    if existing + len(requested_slots) > MAX_SLOTS_PER_DAY:
        logger.info(
            "User %s asked for %d slot(s) on %s with %d already booked",
            user_id, len(requested_slots), booking_date, existing,
        )
        raise CapacityExceeded(existing, len(requested_slots), MAX_SLOTS_PER_DAY)

    booked: List[Booking] = []
    failures: List[SlotFailure] = []
    for time_slot in requested_slots:
        try:
            booked.append(await ledger.insert_active(user_id, booking_date, time_slot))
        except SlotConflict as exc:
            failures.append(SlotFailure(time_slot, FailureReason.CONFLICT, str(exc)))
        except StorageError as exc:
            failures.append(SlotFailure(time_slot, FailureReason.STORAGE_ERROR, str(exc)))

    if not booked and all(f.reason is FailureReason.STORAGE_ERROR for f in failures):
        # Nothing to report but an outage
        raise StorageError("Error booking slots")

    if not booked:
        outcome = BatchOutcome.ALL_FAILED
    elif failures:
        outcome = BatchOutcome.PARTIAL_SUCCESS
    else:
        outcome = BatchOutcome.ALL_SUCCEEDED

    logger.info(
        "Batch for user %s on %s: %s (%d booked, %d failed)",
        user_id, booking_date, outcome.value, len(booked), len(failures),
    )
    return BatchResult(outcome=outcome, booked=booked, failures=failures)
