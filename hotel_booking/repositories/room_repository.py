from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.models import Room


async def find_room_by_id(db: AsyncSession, room_id: int, for_update: bool = False) -> Optional[Room]:
    """
    Fetch a room by id.

    With for_update=True the row is locked (SELECT ... FOR UPDATE) until the
    surrounding transaction ends, serializing every allocator that targets
    the same room. Dialects without row locks (SQLite) ignore the clause.
    """
    query = select(Room).where(Room.id == room_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()

