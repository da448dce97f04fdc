from __future__ import annotations
import logging
from typing import Optional

import httpx
from httpx import Timeout

from app.config import NOTIFICATION_PROXY_URL, FUNCTIONS_API_KEY, PROXY_TIMEOUT_S

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    pass


def function_headers() -> dict:
    """Headers the functions app expects (same shape for every function)."""
    headers = {"Content-Type": "application/json"}
    if FUNCTIONS_API_KEY:
        headers["apikey"] = FUNCTIONS_API_KEY
        headers["Authorization"] = f"Bearer {FUNCTIONS_API_KEY}"
    return headers


def error_message(resp: httpx.Response, fallback: str) -> str:
    try:
        data = resp.json()
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return fallback


async def send_booking_email(payload: dict, *, client: Optional[httpx.AsyncClient] = None) -> dict:
    """
    Invokes the send-booking-email function.
    Raises NotificationError on transport errors and non-2xx answers.
    """
    try:
        if client is not None:
            resp = await client.post(NOTIFICATION_PROXY_URL, json=payload, headers=function_headers())
        else:
            async with httpx.AsyncClient(timeout=Timeout(PROXY_TIMEOUT_S)) as c:
                resp = await c.post(NOTIFICATION_PROXY_URL, json=payload, headers=function_headers())
    except httpx.HTTPError as e:
        raise NotificationError(f"notification proxy unreachable: {e}") from e

    if resp.status_code >= 400:
        msg = error_message(resp, f"notification proxy returned {resp.status_code}")
        raise NotificationError(msg)
    return resp.json()
