"""
Booking confirmation emails sent through Resend.
"""
from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from html import escape
from typing import Union

import resend

from app.config import EMAIL_FROM_ADDRESS, RESEND_API_KEY

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def format_booking_date(iso_date: str) -> str:
    """
    '2026-01-05T15:00:00Z' -> 'Monday, January 5, 2026 at 3:00 PM'
    Emails always show UTC; offset-less input is taken as UTC.
    """
    dt = datetime.fromisoformat(iso_date.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    hour = dt.hour % 12 or 12
    return f"{dt:%A, %B} {dt.day}, {dt.year} at {hour}:{dt:%M %p}"


def user_confirmation_html(therapist_name: str, formatted_date: str, meeting_link: str) -> str:
    return f"""
        <h1>Your therapy session is confirmed!</h1>
        <p><strong>Therapist:</strong> {escape(therapist_name)}</p>
        <p><strong>Date &amp; Time:</strong> {formatted_date}</p>
        <p><strong>Video Link:</strong> <a href="{meeting_link}">Join Session</a></p>
        <p>Please join the session at the scheduled time using the link above.</p>
        <p>Best regards,<br>The MindCare Team</p>
    """


def operator_notification_html(
    user_name: str, user_email: str, therapist_name: str, formatted_date: str, meeting_link: str
) -> str:
    return f"""
        <h1>New Therapy Booking</h1>
        <p><strong>Patient:</strong> {escape(user_name)} ({escape(user_email)})</p>
        <p><strong>Therapist:</strong> {escape(therapist_name)}</p>
        <p><strong>Date &amp; Time:</strong> {formatted_date}</p>
        <p><strong>Video Link:</strong> <a href="{meeting_link}">{meeting_link}</a></p>
        <p>Please ensure you're available for this session.</p>
    """


async def send_email(to: Union[str, list[str]], subject: str, html: str) -> dict:
    recipients = [to] if isinstance(to, str) else to
    params = {
        "from": EMAIL_FROM_ADDRESS,
        "to": recipients,
        "subject": subject,
        "html": html,
    }
    try:
        # the Resend SDK is synchronous
        response = await asyncio.to_thread(resend.Emails.send, params)
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e
    logger.info(f"✅ Email sent to {recipients}: {response}")
    return response
