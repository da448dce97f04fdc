from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.models import SymptomCheck, User
from app.schemas import SymptomCheckReq, SymptomCheckResp
from app.services import advice_client
from app.services.advice_client import AdviceError, AdviceRateLimited, AdviceUnavailable
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/symptoms", tags=["symptoms"])

RATE_LIMIT_MESSAGE = "Too many requests. Please try again in a moment."
UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable."


@router.post("/check", response_model=SymptomCheckResp)
async def check_symptoms(
    req: SymptomCheckReq,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Forwards the description to the symptom-checker function and records the
    exchange. Records are never read back by the app.
    """
    symptoms = (req.symptoms or "").strip()
    if not symptoms:
        raise HTTPException(status_code=400, detail="Please describe your symptoms")

    try:
        guidance = await advice_client.request_guidance(symptoms)
    except AdviceRateLimited:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=RATE_LIMIT_MESSAGE)
    except AdviceUnavailable:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=UNAVAILABLE_MESSAGE)
    except AdviceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e) or "Failed to analyze symptoms")

    db.add(SymptomCheck(user_id=current_user.id, symptoms=symptoms, ai_response=guidance))
    await db.commit()
    return SymptomCheckResp(response=guidance)
