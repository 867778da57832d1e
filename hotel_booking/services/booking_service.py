"""
Booking allocator: creates and reassigns room bookings.

CONCURRENCY STRATEGY: Pessimistic Room Lock + Unique User Constraint
=====================================================================

Problem:
  Two users try to take the last slot of a room simultaneously.
  Both count bookings=capacity-1, both insert, both succeed.
  Result: Overbooking.

Solution:
  Occupancy is derived from the bookings table, so the check and the write
  must happen under one lock per room.

  1. SELECT the room ... FOR UPDATE (held until the request commits)
  2. COUNT bookings for the room; reject if count >= capacity
  3. INSERT the booking (create) or UPDATE its room_id (modify)
  4. Commit releases the lock; the next request for the room counts again

  For one user, a UNIQUE(user_id) constraint on bookings backs the
  "one booking per user" rule, and modify reads the user's booking
  FOR UPDATE so two reassignments of the same booking serialize.

  Rooms hold a handful of guests, so per-room lock contention is small and
  no request is ever retried: a request that loses the race sees the room
  full and fails with OVER_CAPACITY.

Order of gates:
  create: entitlement -> existing booking -> capacity -> insert
  modify: ownership -> capacity -> update in place
"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.core.exceptions import CannotBookError, CannotBookReason, NotFoundError
from hotel_booking.core.logging import get_logger
from hotel_booking.core.metrics import booking_latency, record_booking_attempt, record_rejection
from hotel_booking.models import Booking
from hotel_booking.repositories import booking_repository
from hotel_booking.services.capacity_service import check_capacity
from hotel_booking.services.entitlement_service import check_eligibility

logger = get_logger(__name__)


def _record_failure(operation: str, user_id: int, exc: Exception) -> None:
    if isinstance(exc, CannotBookError):
        record_booking_attempt(operation, "cannot_book")
        record_rejection(exc.reason.value)
        logger.warning(
            "booking_rejected",
            operation=operation,
            user_id=user_id,
            reason=exc.reason.value,
        )
    elif isinstance(exc, NotFoundError):
        record_booking_attempt(operation, "not_found")
        logger.info("booking_not_found", operation=operation, user_id=user_id, detail=exc.detail)


async def get_booking(db: AsyncSession, user_id: int) -> Booking:
    """Get the user's booking together with its room."""
    with booking_latency.labels(operation="get").time():
        booking = await booking_repository.find_by_user_id(db, user_id)

    if not booking:
        exc = NotFoundError("Booking not found")
        _record_failure("get", user_id, exc)
        raise exc

    record_booking_attempt("get", "success")
    return booking


async def create_booking(db: AsyncSession, user_id: int, room_id: int) -> Booking:
    """
    Book a room for an entitled user who holds no booking yet.

    Raises CannotBookError (ineligible, already booked, room full) or
    NotFoundError (unknown room).
    """
    with booking_latency.labels(operation="create").time():
        try:
            booking = await _create(db, user_id, room_id)
        except (CannotBookError, NotFoundError) as exc:
            _record_failure("create", user_id, exc)
            raise

    record_booking_attempt("create", "success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        user_id=user_id,
        room_id=room_id,
    )
    return booking


async def _create(db: AsyncSession, user_id: int, room_id: int) -> Booking:
    await check_eligibility(db, user_id)

    if await booking_repository.find_by_user_id(db, user_id):
        raise CannotBookError(CannotBookReason.ALREADY_BOOKED)

    room = await check_capacity(db, room_id)

    try:
        return await booking_repository.create_booking(db, user_id, room)
    except IntegrityError:
        # A concurrent create for the same user committed first
        await db.rollback()
        raise CannotBookError(CannotBookReason.ALREADY_BOOKED)


async def modify_booking(
    db: AsyncSession,
    user_id: int,
    room_id: int,
    booking_id: Optional[int] = None,
) -> Booking:
    """
    Move the user's booking to another room, keeping the booking id.

    booking_id, when given, must be the caller's own booking.
    """
    with booking_latency.labels(operation="modify").time():
        try:
            booking, previous_room_id = await _modify(db, user_id, room_id, booking_id)
        except (CannotBookError, NotFoundError) as exc:
            _record_failure("modify", user_id, exc)
            raise

    record_booking_attempt("modify", "success")
    logger.info(
        "booking_modified",
        booking_id=booking.id,
        user_id=user_id,
        from_room_id=previous_room_id,
        to_room_id=room_id,
    )
    return booking


async def _modify(
    db: AsyncSession,
    user_id: int,
    room_id: int,
    booking_id: Optional[int],
) -> tuple[Booking, int]:
    existing = await booking_repository.find_by_user_id(db, user_id, for_update=True)
    if not existing:
        raise CannotBookError(CannotBookReason.NO_BOOKING)

    if existing.user_id != user_id:
        raise CannotBookError(CannotBookReason.NOT_OWNER)

    if booking_id is not None and existing.id != booking_id:
        raise CannotBookError(CannotBookReason.NOT_OWNER)

    previous_room_id = existing.room_id
    room = await check_capacity(db, room_id)

    booking = await booking_repository.upsert_booking(db, existing.id, user_id, room)
    return booking, previous_room_id
