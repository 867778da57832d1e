"""
Ticket and TicketType models.

Only a ticket that is PAID, for in-person attendance (not remote) and whose
type includes hotel accommodation entitles its holder to a room.
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from hotel_booking.db.base import Base, TimestampMixin


class TicketStatus(str, enum.Enum):
    RESERVED = "RESERVED"
    PAID = "PAID"


class TicketType(Base, TimestampMixin):
    __tablename__ = "ticket_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Integer, nullable=False)
    is_remote = Column(Boolean, nullable=False, default=False)
    includes_hotel = Column(Boolean, nullable=False, default=False)

    tickets = relationship("Ticket", back_populates="ticket_type")

    def __repr__(self) -> str:
        return (
            f"<TicketType(id={self.id}, remote={self.is_remote}, "
            f"hotel={self.includes_hotel})>"
        )


class Ticket(Base, TimestampMixin):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    enrollment_id = Column(Integer, ForeignKey("enrollments.id"), nullable=False, unique=True, index=True)
    ticket_type_id = Column(Integer, ForeignKey("ticket_types.id"), nullable=False)
    status = Column(String(20), nullable=False, default=TicketStatus.RESERVED.value)

    enrollment = relationship("Enrollment", back_populates="ticket")
    ticket_type = relationship("TicketType", back_populates="tickets", lazy="joined")

    __table_args__ = (
        CheckConstraint("status IN ('RESERVED', 'PAID')", name="check_ticket_status"),
    )

    @property
    def includes_accommodation(self) -> bool:
        """True when this ticket entitles its holder to a hotel room."""
        return (
            self.status == TicketStatus.PAID.value
            and not self.ticket_type.is_remote
            and self.ticket_type.includes_hotel
        )

    def __repr__(self) -> str:
        return f"<Ticket(id={self.id}, enrollment={self.enrollment_id}, status={self.status})>"
