from __future__ import annotations
import asyncio
import logging

from fastapi import APIRouter, Request

from app.config import OPERATOR_NOTIFICATION_EMAILS
from app.functions.deps import cors_json, key_error, preflight
from app.schemas import BookingEmailRequest
from app.services import email_service
from app.services.booking_service import meeting_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["functions"])


@router.options("/send-booking-email")
async def send_booking_email_preflight():
    return preflight()


@router.post("/send-booking-email")
async def send_booking_email(request: Request):
    """
    Confirms a booking to the user and notifies every operator address.
    All sends run concurrently and all are awaited before answering;
    any failed send makes the whole call a 500.
    """
    denied = key_error(request)
    if denied is not None:
        return denied

    try:
        req = BookingEmailRequest.model_validate(await request.json())

        formatted_date = email_service.format_booking_date(req.bookingDate)
        link = meeting_url(req.jitsiRoomCode)

        operator_sends = [
            email_service.send_email(
                to=address,
                subject=f"New Therapy Booking - {req.userName}",
                html=email_service.operator_notification_html(
                    req.userName, req.userEmail, req.therapistName, formatted_date, link
                ),
            )
            for address in OPERATOR_NOTIFICATION_EMAILS
        ]
        user_send = email_service.send_email(
            to=req.userEmail,
            subject="Your Therapy Session is Confirmed",
            html=email_service.user_confirmation_html(req.therapistName, formatted_date, link),
        )

        results = await asyncio.gather(*operator_sends, user_send, return_exceptions=True)
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise failures[0]
    except Exception as e:
        logger.error(f"Error sending booking email: {e}")
        return cors_json({"error": str(e)}, status_code=500)

    return cors_json({"success": True})
