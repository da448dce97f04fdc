from __future__ import annotations
import asyncio
import logging

from openai import OpenAI, APIConnectionError, APIStatusError, RateLimitError, OpenAIError

from app.config import OPENAI_MODEL, OPENAI_TIMEOUT_S, ADVICE_SYSTEM_PROMPT

logger = logging.getLogger(__name__)

_client: OpenAI | None = None


class AdviceRateLimited(Exception):
    pass


class AdviceQuotaExceeded(Exception):
    pass


def get_client() -> OpenAI:
    # OPENAI_API_KEY는 env로 자동 로딩; import 시점에 키가 없어도 되도록 지연 생성
    global _client
    if _client is None:
        _client = OpenAI()
    return _client


def _messages_for_openai(symptoms: str):
    return [
        {"role": "system", "content": ADVICE_SYSTEM_PROMPT},
        {"role": "user", "content": symptoms},
    ]


async def generate_guidance(symptoms: str) -> str:
    """
    Free-text guidance for the described symptoms.
    Raises AdviceRateLimited / AdviceQuotaExceeded for the two capacity
    conditions callers surface separately; RuntimeError for anything else.
    """
    def _call():
        return get_client().chat.completions.create(
            model=OPENAI_MODEL,
            messages=_messages_for_openai(symptoms),
            timeout=OPENAI_TIMEOUT_S,
        )

    try:
        resp = await asyncio.to_thread(_call)
    except RateLimitError as e:
        if getattr(e, "code", None) == "insufficient_quota":
            raise AdviceQuotaExceeded(str(e)) from e
        raise AdviceRateLimited(str(e)) from e
    except APIStatusError as e:
        if e.status_code == 402:
            raise AdviceQuotaExceeded(str(e)) from e
        logger.error(f"OpenAI status error {e.status_code}: {e}")
        raise RuntimeError(f"OpenAI error: {e}") from e
    except (APIConnectionError, OpenAIError) as e:
        logger.error(f"OpenAI error: {e}")
        raise RuntimeError(f"OpenAI error: {e}") from e

    try:
        content = resp.choices[0].message.content
    except (IndexError, AttributeError) as e:
        raise RuntimeError(f"OpenAI response parse error: {e}") from e
    if not content:
        raise RuntimeError("OpenAI returned empty content")
    return content.strip()
