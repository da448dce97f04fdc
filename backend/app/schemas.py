from __future__ import annotations
from typing import Optional, List
from pydantic import BaseModel, Field, EmailStr
from datetime import datetime


# 인증
class UserCreate(BaseModel):
    """
    /auth/register request body.
    """
    email: EmailStr
    password: str = Field(..., min_length=8)
    name: Optional[str] = None


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserPublic(BaseModel):
    """
    User info without the password hash.
    `name` is the display name used in booking confirmation emails.
    """
    id: int
    email: EmailStr
    name: Optional[str] = None

    class Config:
        from_attributes = True


# 기분 기록
class MoodCreate(BaseModel):
    # None means nothing was selected; the router answers with a validation message
    mood_level: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None


class MoodOut(BaseModel):
    id: int
    mood_level: int
    notes: str
    created_at: datetime

    class Config:
        from_attributes = True


class MoodLogResponse(BaseModel):
    message: str
    recent: List[MoodOut]


# 명상
class MeditationTheme(BaseModel):
    key: str
    color: str
    affirmation: str
    tips: List[str]


class MeditationOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    duration_minutes: int
    category: str
    audio_url: Optional[str] = None
    image_url: Optional[str] = None
    theme: MeditationTheme


# 상담사
class TherapistOut(BaseModel):
    id: int
    name: str
    specialization: str
    bio: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        from_attributes = True


# 예약
class BookingCreate(BaseModel):
    therapist_id: Optional[int] = None
    booking_date: Optional[datetime] = None


class BookingUpdate(BaseModel):
    booking_date: Optional[datetime] = None
    # version the client last saw; omit for last-write-wins
    expected_version: Optional[int] = None


class BookingOut(BaseModel):
    id: int
    therapist_id: int
    therapist_name: str
    therapist_specialization: Optional[str] = None
    booking_date: datetime
    jitsi_room_code: str
    meeting_url: str
    status: str
    version: int
    created_at: Optional[datetime] = None


class BookingActionResponse(BaseModel):
    message: str
    booking: BookingOut


# 증상 체크
class SymptomCheckReq(BaseModel):
    symptoms: Optional[str] = None


class SymptomCheckResp(BaseModel):
    response: str


# functions (notification / advice proxies)
class BookingEmailRequest(BaseModel):
    therapistName: str
    bookingDate: str
    jitsiRoomCode: str
    userName: str
    userEmail: EmailStr


class AdviceRequest(BaseModel):
    symptoms: Optional[str] = None
