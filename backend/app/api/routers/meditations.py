from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.db import get_db
from app.models import Meditation, User
from app.schemas import MeditationOut
from app.services.auth_service import get_current_user
from app.services.meditation_themes import theme_for

router = APIRouter(prefix="/meditations", tags=["meditations"])


def to_meditation_out(m: Meditation) -> MeditationOut:
    return MeditationOut(
        id=m.id,
        title=m.title,
        description=m.description,
        duration_minutes=m.duration_minutes,
        category=m.category,
        audio_url=m.audio_url,
        image_url=m.image_url,
        theme=theme_for(m.category),
    )


@router.get("", response_model=List[MeditationOut])
async def list_meditations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    q = select(Meditation).order_by(Meditation.created_at.desc(), Meditation.id.desc())
    meditations = (await db.execute(q)).scalars().all()
    return [to_meditation_out(m) for m in meditations]


@router.get("/{meditation_id}", response_model=MeditationOut)
async def get_meditation(
    meditation_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    meditation = await db.get(Meditation, meditation_id)
    if not meditation:
        raise HTTPException(status_code=404, detail="Meditation not found")
    return to_meditation_out(meditation)
