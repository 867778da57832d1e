"""
Room capacity checks.

check_capacity locks the room row before counting its bookings. Because the
lock is held until the caller's transaction commits, the count and the
insert/update that follows behave as one step for every request targeting
that room: the next allocator waits on the lock, then counts again and sees
the committed booking.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.core.exceptions import CannotBookError, CannotBookReason, NotFoundError
from hotel_booking.core.logging import get_logger
from hotel_booking.models import Room
from hotel_booking.repositories import booking_repository
from hotel_booking.repositories.room_repository import find_room_by_id

logger = get_logger(__name__)


async def check_capacity(db: AsyncSession, room_id: int) -> Room:
    """
    Return the room if it has a free slot.

    Raises:
        NotFoundError: the room does not exist.
        CannotBookError(OVER_CAPACITY): bookings already fill the room.
    """
    room = await find_room_by_id(db, room_id, for_update=True)
    if not room:
        raise NotFoundError(f"Room {room_id} not found")

    occupied = await booking_repository.count_by_room_id(db, room_id)
    if occupied >= room.capacity:
        logger.info(
            "room_full",
            room_id=room_id,
            capacity=room.capacity,
            occupied=occupied,
        )
        raise CannotBookError(CannotBookReason.OVER_CAPACITY)

    return room
