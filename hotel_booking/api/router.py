"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from hotel_booking.api.routes import bookings

api_router = APIRouter()
api_router.include_router(bookings.router)
