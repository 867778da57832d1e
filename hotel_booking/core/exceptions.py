"""
Allocation errors raised by the booking services.

Both are HTTPExceptions so routes stay free of error translation.
CannotBookError covers every "not allowed to take this room" outcome and
carries a reason so callers and tests can tell them apart; all reasons
share the 403 status.
"""

import enum
from typing import Optional

from fastapi import HTTPException, status


class CannotBookReason(str, enum.Enum):
    INELIGIBLE = "ineligible"
    OVER_CAPACITY = "over_capacity"
    NOT_OWNER = "not_owner"
    NO_BOOKING = "no_booking"
    ALREADY_BOOKED = "already_booked"


_REASON_MESSAGES = {
    CannotBookReason.INELIGIBLE: "User has no enrollment or no paid in-person ticket with hotel",
    CannotBookReason.OVER_CAPACITY: "Room is at full capacity",
    CannotBookReason.NOT_OWNER: "Booking does not belong to this user",
    CannotBookReason.NO_BOOKING: "User has no booking to modify",
    CannotBookReason.ALREADY_BOOKED: "User already holds a booking",
}


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "No result for this search"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class CannotBookError(HTTPException):
    def __init__(self, reason: CannotBookReason, detail: Optional[str] = None):
        self.reason = reason
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail or _REASON_MESSAGES[reason],
        )

    def __repr__(self) -> str:
        return f"CannotBookError(reason={self.reason.value})"
