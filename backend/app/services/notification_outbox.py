"""
Delivery of booking notifications recorded in the outbox table.

A booking and its BookingNotification row are committed together; this
module turns PENDING rows into proxy calls. Delivery is at-least-once: a
row is only marked SENT after the proxy answered 2xx, so a crash between the
send and the commit sends the email again once the claim lease runs out.

Several dispatchers may see the same row (the API's background task, the
Kafka consumer, the sweep). Each one first claims the row with a conditional
UPDATE that pushes next_attempt_at out by NOTIFY_CLAIM_LEASE_S; whoever gets
rowcount 0 leaves the row alone.
"""
from __future__ import annotations
import logging
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import (
    NOTIFY_CLAIM_LEASE_S, NOTIFY_FIRST_ATTEMPT_GRACE_S, NOTIFY_MAX_ATTEMPTS, NOTIFY_RETRY_BASE_S
)
from app.db import async_session_maker
from app.models import BookingNotification, utcnow
from app.services import notification_client

logger = logging.getLogger(__name__)


def retry_delay(attempts: int) -> timedelta:
    return timedelta(seconds=NOTIFY_RETRY_BASE_S * (2 ** max(attempts - 1, 0)))


async def claim_notification(db: AsyncSession, notification_id: int) -> bool:
    """
    True when this caller now owns the next attempt.
    A row is claimable while PENDING and due, where a fresh row still inside
    its first-attempt grace counts as due for a direct dispatch.
    """
    now = utcnow()
    result = await db.execute(
        update(BookingNotification)
        .where(
            BookingNotification.id == notification_id,
            BookingNotification.status == "PENDING",
            BookingNotification.next_attempt_at <= now + timedelta(seconds=NOTIFY_FIRST_ATTEMPT_GRACE_S),
        )
        .values(next_attempt_at=now + timedelta(seconds=NOTIFY_CLAIM_LEASE_S))
    )
    await db.commit()
    return result.rowcount == 1


async def dispatch_notification(notification_id: int) -> str | None:
    """
    One delivery attempt. Returns the row's resulting status, or None if the
    row does not exist or another dispatcher holds it. Send failures are
    recorded on the row, not raised.
    """
    async with async_session_maker() as db:
        claimed = await claim_notification(db, notification_id)
        notification = await db.get(BookingNotification, notification_id)
        if notification is None:
            logger.warning(f"[outbox] notification {notification_id} not found")
            return None
        if notification.status != "PENDING":
            logger.info(f"[outbox] notification {notification_id} already {notification.status}, skipping")
            return notification.status
        if not claimed:
            logger.info(f"[outbox] notification {notification_id} is claimed elsewhere or not due, skipping")
            return None

        try:
            await notification_client.send_booking_email(notification.payload)
        except Exception as e:
            notification.attempts += 1
            notification.last_error = str(e)
            if notification.attempts >= NOTIFY_MAX_ATTEMPTS:
                notification.status = "FAILED"
                logger.error(
                    f"[outbox] notification {notification_id} FAILED after {notification.attempts} attempts: {e}"
                )
            else:
                notification.next_attempt_at = utcnow() + retry_delay(notification.attempts)
                logger.warning(
                    f"[outbox] notification {notification_id} attempt {notification.attempts} failed: {e}"
                )
            await db.commit()
            return notification.status

        notification.attempts += 1
        notification.status = "SENT"
        notification.sent_at = utcnow()
        notification.last_error = None
        await db.commit()
        logger.info(f"[outbox] ✅ notification {notification_id} sent (booking {notification.booking_id})")
        return notification.status


async def due_notification_ids(limit: int = 50) -> list[int]:
    async with async_session_maker() as db:
        q = (
            select(BookingNotification.id)
            .where(
                BookingNotification.status == "PENDING",
                BookingNotification.next_attempt_at <= utcnow(),
            )
            .order_by(BookingNotification.next_attempt_at.asc(), BookingNotification.id.asc())
            .limit(limit)
        )
        return list((await db.execute(q)).scalars().all())


async def dispatch_due_notifications(limit: int = 50) -> int:
    """Retries every PENDING row whose backoff has elapsed. Returns how many were attempted."""
    ids = await due_notification_ids(limit)
    for notification_id in ids:
        await dispatch_notification(notification_id)
    return len(ids)
