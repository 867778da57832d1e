"""
Pydantic schemas for booking request/response validation.

Wire fields are camelCase (roomId, bookingId, hotelId...); Python attributes
stay snake_case.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Primary keys are 32-bit INTEGER columns
MAX_ID = 2_147_483_647


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class BookingCreate(CamelModel):
    room_id: int = Field(..., gt=0, le=MAX_ID, strict=True)


class BookingUpdate(CamelModel):
    room_id: int = Field(..., gt=0, le=MAX_ID, strict=True)


class RoomResponse(CamelModel):
    id: int
    name: str
    capacity: int
    hotel_id: int
    created_at: datetime
    updated_at: datetime


class BookingResponse(CamelModel):
    id: int
    room: RoomResponse = Field(..., alias="Room")


class BookingIdResponse(CamelModel):
    booking_id: int
