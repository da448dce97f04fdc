from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

import app.kafka as kafka
from app.db import get_db
from app.models import Booking, User
from app.schemas import BookingCreate, BookingUpdate, BookingOut, BookingActionResponse
from app.services import booking_service
from app.services.auth_service import get_current_user
from app.services.booking_service import (
    BookingConflict, BookingNotFound, BookingValidationError, TherapistNotFound
)
from app.services.notification_outbox import dispatch_notification

router = APIRouter(prefix="/bookings", tags=["bookings"])


def to_booking_out(booking: Booking) -> BookingOut:
    therapist = booking.therapist
    return BookingOut(
        id=booking.id,
        therapist_id=booking.therapist_id,
        therapist_name=therapist.name if therapist else "Unknown therapist",
        therapist_specialization=therapist.specialization if therapist else None,
        booking_date=booking_service.as_utc(booking.booking_date),
        jitsi_room_code=booking.jitsi_room_code,
        meeting_url=booking_service.meeting_url(booking.jitsi_room_code),
        status=booking.status,
        version=booking.version,
        created_at=booking_service.as_utc(booking.created_at),
    )


def booking_http_error(e: Exception) -> HTTPException:
    if isinstance(e, BookingValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, TherapistNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Therapist not found")
    if isinstance(e, BookingNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    if isinstance(e, BookingConflict):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Booking failed")


@router.get("", response_model=List[BookingOut])
async def get_my_bookings(
    include_cancelled: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    bookings = await booking_service.list_bookings(db, current_user.id, include_cancelled=include_cancelled)
    return [to_booking_out(b) for b in bookings]


@router.post("", response_model=BookingActionResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    req: BookingCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        booking, notification_id = await booking_service.create_booking(
            db, current_user, req.therapist_id, req.booking_date
        )
    except (BookingValidationError, TherapistNotFound) as e:
        raise booking_http_error(e)

    # 이메일 발송은 예약 성공 여부와 무관 (outbox row가 재시도를 보장)
    if notification_id is not None:
        if not await kafka.publish_booking_notification(notification_id):
            background_tasks.add_task(dispatch_notification, notification_id)

    return BookingActionResponse(message="Session booked!", booking=to_booking_out(booking))


@router.patch("/{booking_id}", response_model=BookingActionResponse)
async def reschedule_booking(
    booking_id: int,
    req: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        booking = await booking_service.reschedule_booking(
            db, current_user.id, booking_id, req.booking_date, expected_version=req.expected_version
        )
    except (BookingValidationError, BookingNotFound, BookingConflict) as e:
        raise booking_http_error(e)
    return BookingActionResponse(message="Booking updated successfully", booking=to_booking_out(booking))


@router.delete("/{booking_id}", response_model=BookingActionResponse)
async def cancel_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Cancels the session. The row is kept with status "cancelled"."""
    try:
        booking = await booking_service.cancel_booking(db, current_user.id, booking_id)
    except (BookingNotFound, BookingConflict) as e:
        raise booking_http_error(e)
    return BookingActionResponse(message="Booking cancelled successfully", booking=to_booking_out(booking))


@router.post("/{booking_id}/complete", response_model=BookingActionResponse)
async def complete_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    try:
        booking = await booking_service.complete_booking(db, current_user.id, booking_id)
    except (BookingNotFound, BookingConflict) as e:
        raise booking_http_error(e)
    return BookingActionResponse(message="Session marked as completed", booking=to_booking_out(booking))
