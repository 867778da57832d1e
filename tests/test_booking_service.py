"""
Tests for the allocator and its entitlement/capacity gates, called directly
with a session (no HTTP layer).
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hotel_booking.core.exceptions import CannotBookError, CannotBookReason, NotFoundError
from hotel_booking.models import Booking, TicketStatus
from hotel_booking.services.booking_service import create_booking, get_booking, modify_booking
from hotel_booking.services.capacity_service import check_capacity
from hotel_booking.services.entitlement_service import check_eligibility


async def count_bookings(db: AsyncSession, room_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(Booking).where(Booking.room_id == room_id)
    )
    return result.scalar_one()


# Entitlement

@pytest.mark.asyncio
async def test_eligible_user_passes(db_session, test_user):
    await check_eligibility(db_session, test_user.id)


@pytest.mark.asyncio
async def test_no_enrollment_is_ineligible(db_session, factory):
    user = await factory.user()
    with pytest.raises(CannotBookError) as exc_info:
        await check_eligibility(db_session, user.id)
    assert exc_info.value.reason == CannotBookReason.INELIGIBLE


@pytest.mark.asyncio
async def test_no_ticket_is_ineligible(db_session, factory):
    user = await factory.user()
    await factory.enrollment(user)
    with pytest.raises(CannotBookError) as exc_info:
        await check_eligibility(db_session, user.id)
    assert exc_info.value.reason == CannotBookReason.INELIGIBLE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,is_remote,includes_hotel",
    [
        (TicketStatus.RESERVED, False, True),
        (TicketStatus.PAID, True, True),
        (TicketStatus.PAID, False, False),
        (TicketStatus.PAID, True, False),
    ],
)
async def test_non_qualifying_ticket_is_ineligible(db_session, factory, status, is_remote, includes_hotel):
    user = await factory.user()
    enrollment = await factory.enrollment(user)
    ticket_type = await factory.ticket_type(is_remote=is_remote, includes_hotel=includes_hotel)
    await factory.ticket(enrollment, ticket_type, status=status)

    with pytest.raises(CannotBookError) as exc_info:
        await check_eligibility(db_session, user.id)
    assert exc_info.value.reason == CannotBookReason.INELIGIBLE


# Capacity

@pytest.mark.asyncio
async def test_capacity_unknown_room(db_session):
    with pytest.raises(NotFoundError):
        await check_capacity(db_session, 12345)


@pytest.mark.asyncio
async def test_capacity_zero_room_is_full(db_session, factory, hotel):
    room = await factory.room(hotel, capacity=0)
    with pytest.raises(CannotBookError) as exc_info:
        await check_capacity(db_session, room.id)
    assert exc_info.value.reason == CannotBookReason.OVER_CAPACITY


@pytest.mark.asyncio
async def test_capacity_last_slot_is_free(db_session, factory, hotel):
    room = await factory.room(hotel, capacity=2)
    await factory.booking(await factory.user(), room)

    assert (await check_capacity(db_session, room.id)).id == room.id


# Get

@pytest.mark.asyncio
async def test_get_without_booking(db_session, test_user):
    with pytest.raises(NotFoundError):
        await get_booking(db_session, test_user.id)


@pytest.mark.asyncio
async def test_get_after_create_returns_room(db_session, test_user, factory, hotel):
    room = await factory.room(hotel)
    created = await create_booking(db_session, test_user.id, room.id)

    booking = await get_booking(db_session, test_user.id)
    assert booking.id == created.id
    assert booking.room_id == room.id
    assert booking.room.id == room.id


# Create

@pytest.mark.asyncio
async def test_create_unknown_room(db_session, test_user):
    with pytest.raises(NotFoundError):
        await create_booking(db_session, test_user.id, 999)


@pytest.mark.asyncio
async def test_create_without_enrollment_is_cannot_book(db_session, factory):
    """Entitlement is checked first: even an unknown room yields CannotBook."""
    user = await factory.user()
    with pytest.raises(CannotBookError) as exc_info:
        await create_booking(db_session, user.id, 999)
    assert exc_info.value.reason == CannotBookReason.INELIGIBLE


@pytest.mark.asyncio
async def test_create_remote_ticket_ignores_free_room(db_session, factory, hotel):
    user = await factory.user()
    enrollment = await factory.enrollment(user)
    await factory.ticket(enrollment, await factory.ticket_type(is_remote=True))
    room = await factory.room(hotel, capacity=10)

    with pytest.raises(CannotBookError) as exc_info:
        await create_booking(db_session, user.id, room.id)
    assert exc_info.value.reason == CannotBookReason.INELIGIBLE
    assert await count_bookings(db_session, room.id) == 0


@pytest.mark.asyncio
async def test_create_fills_room_to_capacity(db_session, factory, hotel):
    room = await factory.room(hotel, capacity=2)
    users = [await factory.eligible_user() for _ in range(3)]

    await create_booking(db_session, users[0].id, room.id)
    await create_booking(db_session, users[1].id, room.id)
    with pytest.raises(CannotBookError) as exc_info:
        await create_booking(db_session, users[2].id, room.id)

    assert exc_info.value.reason == CannotBookReason.OVER_CAPACITY
    assert await count_bookings(db_session, room.id) == 2


@pytest.mark.asyncio
async def test_create_second_booking_for_user(db_session, test_user, factory, hotel):
    room = await factory.room(hotel)
    await create_booking(db_session, test_user.id, room.id)

    with pytest.raises(CannotBookError) as exc_info:
        await create_booking(db_session, test_user.id, room.id)
    assert exc_info.value.reason == CannotBookReason.ALREADY_BOOKED


# Modify

@pytest.mark.asyncio
async def test_modify_without_booking(db_session, test_user, factory, hotel):
    """No booking means CannotBook even when the room has space."""
    room = await factory.room(hotel, capacity=5)
    with pytest.raises(CannotBookError) as exc_info:
        await modify_booking(db_session, test_user.id, room.id)
    assert exc_info.value.reason == CannotBookReason.NO_BOOKING


@pytest.mark.asyncio
async def test_modify_other_users_booking_id(db_session, test_user, factory, hotel):
    room = await factory.room(hotel)
    await factory.booking(test_user, room)
    other = await factory.booking(await factory.user(), room)

    with pytest.raises(CannotBookError) as exc_info:
        await modify_booking(db_session, test_user.id, room.id, booking_id=other.id)
    assert exc_info.value.reason == CannotBookReason.NOT_OWNER


@pytest.mark.asyncio
async def test_modify_keeps_booking_identity(db_session, test_user, factory, hotel):
    room = await factory.room(hotel)
    new_room = await factory.room(hotel)
    original = await factory.booking(test_user, room)

    moved = await modify_booking(db_session, test_user.id, new_room.id, booking_id=original.id)

    assert moved.id == original.id
    assert moved.room_id == new_room.id
    assert await count_bookings(db_session, room.id) == 0
    assert await count_bookings(db_session, new_room.id) == 1


@pytest.mark.asyncio
async def test_modify_unknown_room(db_session, test_user, factory, hotel):
    room = await factory.room(hotel)
    await factory.booking(test_user, room)

    with pytest.raises(NotFoundError):
        await modify_booking(db_session, test_user.id, room.id + 100)


@pytest.mark.asyncio
async def test_modify_into_full_room(db_session, test_user, factory, hotel):
    room = await factory.room(hotel)
    full_room = await factory.room(hotel, capacity=1)
    await factory.booking(test_user, room)
    await factory.booking(await factory.user(), full_room)

    with pytest.raises(CannotBookError) as exc_info:
        await modify_booking(db_session, test_user.id, full_room.id)
    assert exc_info.value.reason == CannotBookReason.OVER_CAPACITY
    assert (await get_booking(db_session, test_user.id)).room_id == room.id


@pytest.mark.asyncio
async def test_freed_slot_can_be_taken(db_session, factory, hotel):
    """
    Room of capacity 1 held by A: B is refused, A moves out, B gets in.
    """
    room = await factory.room(hotel, capacity=1)
    other_room = await factory.room(hotel, capacity=1)
    user_a = await factory.eligible_user()
    user_b = await factory.eligible_user()

    await create_booking(db_session, user_a.id, room.id)

    with pytest.raises(CannotBookError) as exc_info:
        await create_booking(db_session, user_b.id, room.id)
    assert exc_info.value.reason == CannotBookReason.OVER_CAPACITY

    await modify_booking(db_session, user_a.id, other_room.id)
    booking_b = await create_booking(db_session, user_b.id, room.id)

    assert booking_b.room_id == room.id
    assert (await get_booking(db_session, user_a.id)).room_id == other_room.id
    assert await count_bookings(db_session, room.id) == 1
