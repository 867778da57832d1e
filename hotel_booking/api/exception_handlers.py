"""
Exception handlers registered on the application.

- CannotBookError -> 403 with the tagged reason next to the detail
- RequestValidationError -> 400 (malformed ids or bodies never reach services)
"""

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hotel_booking.core.exceptions import CannotBookError
from hotel_booking.core.logging import get_logger

logger = get_logger(__name__)


async def cannot_book_handler(request: Request, exc: CannotBookError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "reason": exc.reason.value},
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    logger.info("request_validation_failed", errors=errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": errors},
    )


EXCEPTION_HANDLERS = {
    CannotBookError: cannot_book_handler,
    RequestValidationError: validation_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
