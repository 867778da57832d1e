"""
Booking endpoints: read, create and reassign the caller's room booking.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.db.session import get_db
from hotel_booking.schemas.booking import (
    BookingCreate,
    BookingIdResponse,
    BookingResponse,
    BookingUpdate,
    MAX_ID,
)
from hotel_booking.services.booking_service import create_booking, get_booking, modify_booking
from hotel_booking.services.cache_service import (
    get_cache_generation,
    get_cached_booking,
    invalidate_booking_cache,
    set_cached_booking,
)
from hotel_booking.core.security import get_current_user_id
from hotel_booking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/booking", tags=["Booking"])


@router.get("", response_model=BookingResponse)
async def get_booking_endpoint(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Get the caller's booking with its room. 404 if the caller has none."""
    generation = await get_cache_generation(user_id)
    cached = await get_cached_booking(user_id, generation)
    if cached:
        return BookingResponse.model_validate(cached)

    booking = await get_booking(db, user_id)
    response = BookingResponse.model_validate(booking)
    await set_cached_booking(user_id, generation, response.model_dump(mode="json", by_alias=True))
    return response


@router.post("", response_model=BookingIdResponse)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a room for the caller.

    403 when the caller is not entitled, already holds a booking, or the room
    is full; 404 when the room does not exist.
    """
    booking = await create_booking(db, user_id, booking_data.room_id)
    await db.commit()
    await invalidate_booking_cache(user_id)
    return BookingIdResponse(booking_id=booking.id)


@router.put("/{booking_id}", response_model=BookingIdResponse)
async def update_booking_endpoint(
    booking_data: BookingUpdate,
    booking_id: int = Path(..., gt=0, le=MAX_ID),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Move the caller's booking to another room.

    403 when the caller has no booking, booking_id is not theirs, or the room
    is full; 404 when the room does not exist.
    """
    booking = await modify_booking(db, user_id, booking_data.room_id, booking_id=booking_id)
    await db.commit()
    await invalidate_booking_cache(user_id)
    return BookingIdResponse(booking_id=booking.id)
