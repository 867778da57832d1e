from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.models import Enrollment


async def find_enrollment_by_user_id(db: AsyncSession, user_id: int) -> Optional[Enrollment]:
    result = await db.execute(select(Enrollment).where(Enrollment.user_id == user_id))
    return result.scalar_one_or_none()
