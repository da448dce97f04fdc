"""
Therapy session booking workflow.

create  -> insert Booking(status="scheduled") + outbox row in one transaction
list    -> user's bookings joined with therapist, newest booking_date first
edit    -> booking_date only, optional optimistic version check, no re-notify
cancel  -> scheduled -> cancelled (row is kept)
complete-> scheduled -> completed

Routers translate the exceptions below into HTTP responses.
"""
from __future__ import annotations
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import JITSI_BASE_URL, NOTIFY_FIRST_ATTEMPT_GRACE_S, ROOM_CODE_PREFIX
from app.models import Booking, BookingNotification, Therapist, User, utcnow
from app.services.auth_service import display_name

logger = logging.getLogger(__name__)

# one-way transitions; anything not listed is rejected
ALLOWED_TRANSITIONS = {
    "scheduled": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}


class BookingError(Exception):
    pass


class BookingValidationError(BookingError):
    pass


class BookingNotFound(BookingError):
    pass


class TherapistNotFound(BookingError):
    pass


class BookingConflict(BookingError):
    pass


# Only bumps codes minted in this process within one millisecond; the unique
# constraint on bookings.jitsi_room_code is what guards across processes.
_last_room_ms = 0


def generate_room_code(now_ms: Optional[int] = None) -> str:
    """Prefix + epoch milliseconds, strictly increasing within this process."""
    global _last_room_ms
    if now_ms is None:
        now_ms = max(time.time_ns() // 1_000_000, _last_room_ms + 1)
        _last_room_ms = now_ms
    return f"{ROOM_CODE_PREFIX}{now_ms}"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Aware UTC datetime. Naive values (SQLite reads, offset-less input) are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def meeting_url(room_code: str) -> str:
    return f"{JITSI_BASE_URL}/{room_code}"


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def build_notification_payload(booking: Booking, therapist: Therapist, user: User) -> dict:
    """Request body of the send-booking-email function."""
    return {
        "therapistName": therapist.name,
        "bookingDate": as_utc(booking.booking_date).isoformat(),
        "jitsiRoomCode": booking.jitsi_room_code,
        "userName": display_name(user),
        "userEmail": user.email,
    }


async def _get_owned_booking(db: AsyncSession, user_id: int, booking_id: int) -> Booking:
    q = (
        select(Booking)
        .where(Booking.id == booking_id, Booking.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    booking = (await db.execute(q)).scalars().unique().one_or_none()
    if booking is None:
        # other users' bookings look the same as missing ones
        raise BookingNotFound(booking_id)
    return booking


async def create_booking(
    db: AsyncSession,
    user: User,
    therapist_id: Optional[int],
    booking_date: Optional[datetime],
) -> tuple[Booking, Optional[int]]:
    """
    Returns the booking and the id of its pending notification (None when the
    user has no email address to confirm to).
    """
    if therapist_id is None or booking_date is None:
        raise BookingValidationError("Please select a therapist and a date")

    therapist = await db.get(Therapist, therapist_id)
    if therapist is None:
        raise TherapistNotFound(therapist_id)

    booking = Booking(
        user_id=user.id,
        therapist_id=therapist.id,
        booking_date=as_utc(booking_date),
        jitsi_room_code=generate_room_code(),
        status="scheduled",
        version=1,
    )
    db.add(booking)
    await db.flush()

    notification = None
    if user.email:
        notification = BookingNotification(
            booking_id=booking.id,
            payload=build_notification_payload(booking, therapist, user),
            status="PENDING",
            # leaves the first attempt to the hand-off below before the sweep may take it
            next_attempt_at=utcnow() + timedelta(seconds=NOTIFY_FIRST_ATTEMPT_GRACE_S),
        )
        db.add(notification)

    await db.commit()
    logger.info(
        f"📅 Booking {booking.id} created: user={user.id} therapist={therapist.id} room={booking.jitsi_room_code}"
    )
    notification_id = notification.id if notification else None
    booking = await _get_owned_booking(db, user.id, booking.id)
    return booking, notification_id


async def list_bookings(db: AsyncSession, user_id: int, include_cancelled: bool = False) -> List[Booking]:
    q = select(Booking).where(Booking.user_id == user_id)
    if not include_cancelled:
        q = q.where(Booking.status != "cancelled")
    q = q.order_by(Booking.booking_date.desc(), Booking.id.desc())
    result = await db.execute(q)
    return list(result.scalars().unique().all())


async def reschedule_booking(
    db: AsyncSession,
    user_id: int,
    booking_id: int,
    new_date: Optional[datetime],
    expected_version: Optional[int] = None,
) -> Booking:
    if new_date is None:
        raise BookingValidationError("Please select a date")

    booking = await _get_owned_booking(db, user_id, booking_id)
    if booking.status != "scheduled":
        raise BookingConflict(f"Only scheduled bookings can be rescheduled (status: {booking.status})")

    stmt = (
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == "scheduled")
        .values(booking_date=as_utc(new_date), version=Booking.version + 1, updated_at=utcnow())
    )
    if expected_version is not None:
        stmt = stmt.where(Booking.version == expected_version)

    result = await db.execute(stmt)
    if result.rowcount == 0:
        await db.rollback()
        raise BookingConflict("This booking was changed elsewhere. Refresh and try again.")
    await db.commit()

    return await _get_owned_booking(db, user_id, booking_id)


async def _transition(db: AsyncSession, user_id: int, booking_id: int, target: str) -> Booking:
    booking = await _get_owned_booking(db, user_id, booking_id)
    if not can_transition(booking.status, target):
        raise BookingConflict(f"Cannot mark a {booking.status} booking as {target}")

    now = utcnow()
    values = {"status": target, "version": Booking.version + 1, "updated_at": now}
    if target == "cancelled":
        values["cancelled_at"] = now
    elif target == "completed":
        values["completed_at"] = now

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == booking.status)
        .values(**values)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise BookingConflict("This booking was changed elsewhere. Refresh and try again.")
    await db.commit()

    logger.info(f"📅 Booking {booking_id} -> {target}")
    return await _get_owned_booking(db, user_id, booking_id)


async def cancel_booking(db: AsyncSession, user_id: int, booking_id: int) -> Booking:
    return await _transition(db, user_id, booking_id, "cancelled")


async def complete_booking(db: AsyncSession, user_id: int, booking_id: int) -> Booking:
    return await _transition(db, user_id, booking_id, "completed")
