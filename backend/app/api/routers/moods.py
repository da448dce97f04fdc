from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.config import RECENT_MOODS_LIMIT
from app.db import get_db
from app.models import Mood, User
from app.schemas import MoodCreate, MoodOut, MoodLogResponse
from app.services.auth_service import get_current_user

router = APIRouter(prefix="/moods", tags=["moods"])


async def fetch_recent_moods(db: AsyncSession, user_id: int) -> List[Mood]:
    q = (
        select(Mood)
        .where(Mood.user_id == user_id)
        .order_by(Mood.created_at.desc(), Mood.id.desc())
        .limit(RECENT_MOODS_LIMIT)
    )
    return list((await db.execute(q)).scalars().all())


@router.get("/recent", response_model=List[MoodOut])
async def get_recent_moods(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """최근 기분 기록 (최신순, 최대 RECENT_MOODS_LIMIT건)"""
    return await fetch_recent_moods(db, current_user.id)


@router.post("", response_model=MoodLogResponse, status_code=status.HTTP_201_CREATED)
async def log_mood(
    mood_in: MoodCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if mood_in.mood_level is None:
        raise HTTPException(status_code=400, detail="Please select a mood level")

    db.add(Mood(
        user_id=current_user.id,
        mood_level=mood_in.mood_level,
        notes=(mood_in.notes or "").strip(),
    ))
    await db.commit()

    return MoodLogResponse(
        message="Mood logged successfully! Keep tracking your wellness journey.",
        recent=[MoodOut.model_validate(m) for m in await fetch_recent_moods(db, current_user.id)],
    )
