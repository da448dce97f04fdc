from __future__ import annotations
import logging

from fastapi import APIRouter, Request

from app.functions.deps import cors_json, key_error, preflight
from app.schemas import AdviceRequest
from app.services import openai_advice
from app.services.openai_advice import AdviceQuotaExceeded, AdviceRateLimited

logger = logging.getLogger(__name__)

router = APIRouter(tags=["functions"])


@router.options("/symptom-checker")
async def symptom_checker_preflight():
    return preflight()


@router.post("/symptom-checker")
async def symptom_checker(request: Request):
    denied = key_error(request)
    if denied is not None:
        return denied

    try:
        req = AdviceRequest.model_validate(await request.json())
    except Exception as e:
        return cors_json({"error": f"Invalid request body: {e}"}, status_code=400)

    symptoms = (req.symptoms or "").strip()
    if not symptoms:
        return cors_json({"error": "symptoms is required"}, status_code=400)

    try:
        guidance = await openai_advice.generate_guidance(symptoms)
    except AdviceRateLimited:
        return cors_json({"error": "Rate limits exceeded, please try again later."}, status_code=429)
    except AdviceQuotaExceeded:
        return cors_json({"error": "Payment required, please add credits to the AI service."}, status_code=402)
    except Exception as e:
        logger.error(f"symptom-checker error: {e}")
        return cors_json({"error": str(e)}, status_code=500)

    return cors_json({"response": guidance})
