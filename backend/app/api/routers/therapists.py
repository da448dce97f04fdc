from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.db import get_db
from app.models import Therapist, User
from app.schemas import TherapistOut
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/therapists", tags=["therapists"])


@router.get("", response_model=List[TherapistOut])
async def list_therapists(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    result = await db.execute(select(Therapist).order_by(Therapist.name))
    return result.scalars().all()


@router.get("/{therapist_id}", response_model=TherapistOut)
async def get_therapist(
    therapist_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    therapist = await db.get(Therapist, therapist_id)
    if not therapist:
        raise HTTPException(status_code=404, detail="Therapist not found")
    return therapist
