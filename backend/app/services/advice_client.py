from __future__ import annotations
import logging
from typing import Optional

import httpx
from httpx import Timeout

from app.config import ADVICE_PROXY_URL, PROXY_TIMEOUT_S
from app.services.notification_client import error_message, function_headers

logger = logging.getLogger(__name__)


class AdviceError(Exception):
    pass


class AdviceRateLimited(AdviceError):
    pass


class AdviceUnavailable(AdviceError):
    pass


async def request_guidance(symptoms: str, *, client: Optional[httpx.AsyncClient] = None) -> str:
    """
    Invokes the symptom-checker function.
    429 -> AdviceRateLimited, 402 -> AdviceUnavailable, anything else -> AdviceError.
    """
    body = {"symptoms": symptoms}
    try:
        if client is not None:
            resp = await client.post(ADVICE_PROXY_URL, json=body, headers=function_headers())
        else:
            async with httpx.AsyncClient(timeout=Timeout(PROXY_TIMEOUT_S)) as c:
                resp = await c.post(ADVICE_PROXY_URL, json=body, headers=function_headers())
    except httpx.HTTPError as e:
        logger.error(f"advice proxy unreachable: {e}")
        raise AdviceError("Failed to analyze symptoms") from e

    if resp.status_code == 429:
        raise AdviceRateLimited(error_message(resp, "rate limited"))
    if resp.status_code == 402:
        raise AdviceUnavailable(error_message(resp, "payment required"))
    if resp.status_code >= 400:
        msg = error_message(resp, "Failed to analyze symptoms")
        logger.error(f"advice proxy returned {resp.status_code}: {msg}")
        raise AdviceError(msg)

    try:
        data = resp.json()
    except ValueError as e:
        raise AdviceError("Failed to analyze symptoms") from e
    guidance = data.get("response") if isinstance(data, dict) else None
    if not guidance:
        raise AdviceError("Failed to analyze symptoms")
    return guidance
