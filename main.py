import logging
import os
from fastapi import FastAPI, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date, datetime
from typing import List, Optional

from coordinator import BatchOutcome, book
from database import init_db, get_session
from errors import BookingNotFound, CapacityExceeded, InvalidRequest, StorageError
from ledger import ReservationLedger
from log_config import setup_logging
from models import Booking, TIME_SLOTS
from pydantic import BaseModel
from fastapi.middleware.cors import CORSMiddleware

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Laundry Room Booking System")

# Configuration
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]


# Pydantic Schemas for Request/Response
class BookingCreate(BaseModel):
    date: date
    slots: List[str]


class BookingRead(BaseModel):
    id: int
    user_id: int
    date: date
    time_slot: str
    status: str
    created_at: datetime


class SlotStatus(BaseModel):
    time_slot: str
    status: str  # available, booked, mine
    booking_id: Optional[int] = None


def to_read(booking: Booking) -> BookingRead:
    return BookingRead(
        id=booking.id,
        user_id=booking.user_id,
        date=booking.booking_date,
        time_slot=booking.time_slot,
        status=booking.status.value,
        created_at=booking.created_at,
    )


# Identity is established upstream; the authenticated user id is trusted as-is
async def get_current_user_id(x_user_id: Optional[int] = Header(default=None)) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Access token required")
    return x_user_id


async def get_ledger(session: AsyncSession = Depends(get_session)) -> ReservationLedger:
    return ReservationLedger(session)


@app.on_event("startup")
async def on_startup():
    await init_db()


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage unavailable for %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"error": str(exc)})


@app.get("/health")
async def health():
    return {"status": "ok", "message": "Server is running"}


@app.get("/slots", response_model=List[str])
async def list_slots():
    return list(TIME_SLOTS)


# --- GET /bookings ---
@app.get("/bookings", response_model=List[BookingRead])
async def get_bookings(
    target_date: Optional[date] = None,
    mine: bool = False,
    user_id: int = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
):
    # With a date: the whole room for that day (or just the caller's share).
    # Without one: everything the caller currently holds.
    if target_date is None:
        bookings = await ledger.list_active(user_id=user_id)
    elif mine:
        bookings = await ledger.list_active(booking_date=target_date, user_id=user_id)
    else:
        bookings = await ledger.list_active(booking_date=target_date)
    return [to_read(b) for b in bookings]


# --- GET /availability ---
@app.get("/availability", response_model=List[SlotStatus])
async def get_availability(
    target_date: date,
    user_id: int = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
):
    # Single query for the day, then a lookup per fixed slot
    bookings = await ledger.list_active(booking_date=target_date)
    booking_map = {b.time_slot: b for b in bookings}

    grid = []
    for label in TIME_SLOTS:
        existing_booking = booking_map.get(label)
        if existing_booking is None:
            grid.append(SlotStatus(time_slot=label, status="available"))
        elif existing_booking.user_id == user_id:
            grid.append(SlotStatus(time_slot=label, status="mine", booking_id=existing_booking.id))
        else:
            grid.append(SlotStatus(time_slot=label, status="booked"))
    return grid


# --- POST /bookings ---
@app.post("/bookings", status_code=status.HTTP_201_CREATED)
async def create_bookings(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
):
    try:
        result = await book(ledger, user_id, booking_data.date, booking_data.slots)
    except InvalidRequest as exc:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": str(exc)})
    except CapacityExceeded as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(exc), "existing": exc.existing},
        )

    booked = [to_read(b).model_dump(mode="json") for b in result.booked]
    messages = [failure.message for failure in result.failures]

    if result.outcome is BatchOutcome.ALL_FAILED:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"error": "No slots were booked", "details": messages},
        )
    if result.outcome is BatchOutcome.PARTIAL_SUCCESS:
        return JSONResponse(
            status_code=status.HTTP_207_MULTI_STATUS,
            content={
                "message": f"{result.succeeded} slot(s) booked successfully",
                "warnings": messages,
                "bookings": booked,
            },
        )
    return {"message": "All slots booked successfully", "bookings": booked}


# --- DELETE /bookings/{booking_id} ---
@app.delete("/bookings/{booking_id}")
async def cancel_booking(
    booking_id: int,
    user_id: int = Depends(get_current_user_id),
    ledger: ReservationLedger = Depends(get_ledger),
):
    try:
        booking = await ledger.cancel(booking_id, user_id)
    except BookingNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return {"message": "Booking cancelled successfully", "booking": to_read(booking)}


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
