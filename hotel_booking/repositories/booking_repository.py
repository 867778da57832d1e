"""
Booking store: persistence of booking rows.

This is the only module that inserts or updates bookings. Reads that feed
an allocation decision run inside the caller's transaction, after the room
lock has been taken, so the counts they return are current.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hotel_booking.models import Booking, Room


async def create_booking(db: AsyncSession, user_id: int, room: Room) -> Booking:
    """Insert a booking. Raises IntegrityError if the user already has one."""
    booking = Booking(user_id=user_id, room_id=room.id, room=room)
    db.add(booking)
    await db.flush()
    await db.refresh(booking)
    return booking


async def find_by_user_id(db: AsyncSession, user_id: int, for_update: bool = False) -> Optional[Booking]:
    """First booking owned by the user, with its room loaded."""
    query = (
        select(Booking)
        .options(selectinload(Booking.room))
        .where(Booking.user_id == user_id)
        .order_by(Booking.id.asc())
        .limit(1)
    )
    if for_update:
        query = query.with_for_update(of=Booking)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def count_by_room_id(db: AsyncSession, room_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Booking).where(Booking.room_id == room_id)
    )
    return result.scalar_one()


async def upsert_booking(db: AsyncSession, booking_id: int, user_id: int, room: Room) -> Booking:
    """
    Point an existing booking at a new room, keyed by booking id.

    Inserts only when no row with that id exists, so a user's booking keeps
    its identity across room changes.
    """
    booking = await db.get(Booking, booking_id)
    if booking is None:
        booking = Booking(id=booking_id, user_id=user_id, room_id=room.id, room=room)
        db.add(booking)
    else:
        booking.room_id = room.id
        booking.room = room
    await db.flush()
    await db.refresh(booking)
    return booking
