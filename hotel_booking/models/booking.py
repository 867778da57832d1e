"""
Booking model: the room currently held by a user.

Key design decisions:
- Unique constraint on user_id: a user holds at most one booking, enforced
  by the database rather than by lookup order
- Reassignment updates room_id in place; rows are never deleted here
- Index on room_id backs the occupancy count done under the room lock
"""

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from hotel_booking.db.base import Base, TimestampMixin


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)

    # Relationships
    user = relationship("User", back_populates="booking")
    room = relationship("Room", back_populates="bookings", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_bookings_user_id"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, room={self.room_id})>"
