"""
Entitlement checks: may this user book a room at all?

A user is entitled when they are enrolled and their enrollment's ticket is
PAID, for in-person attendance, and of a type that includes hotel. The
check only reads; it runs before any room is locked.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.core.exceptions import CannotBookError, CannotBookReason
from hotel_booking.core.logging import get_logger
from hotel_booking.repositories.enrollment_repository import find_enrollment_by_user_id
from hotel_booking.repositories.ticket_repository import find_ticket_by_enrollment_id

logger = get_logger(__name__)


async def check_eligibility(db: AsyncSession, user_id: int) -> None:
    """Raise CannotBookError(INELIGIBLE) unless the user holds a qualifying ticket."""
    enrollment = await find_enrollment_by_user_id(db, user_id)
    if not enrollment:
        logger.info("entitlement_denied", user_id=user_id, cause="no_enrollment")
        raise CannotBookError(CannotBookReason.INELIGIBLE)

    ticket = await find_ticket_by_enrollment_id(db, enrollment.id)
    if not ticket:
        logger.info("entitlement_denied", user_id=user_id, cause="no_ticket")
        raise CannotBookError(CannotBookReason.INELIGIBLE)

    if not ticket.includes_accommodation:
        logger.info(
            "entitlement_denied",
            user_id=user_id,
            cause="ticket_not_qualifying",
            status=ticket.status,
            is_remote=ticket.ticket_type.is_remote,
            includes_hotel=ticket.ticket_type.includes_hotel,
        )
        raise CannotBookError(CannotBookReason.INELIGIBLE)
