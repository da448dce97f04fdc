import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.models import User
from app.services.auth_service import (
    authenticate_user, create_access_token, get_current_user, get_user_by_email, hash_password, normalize_email
)
from app.services.session_events import session_events
from app.schemas import UserCreate, Token, UserPublic

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    if await get_user_by_email(db, user_in.email):
        raise HTTPException(status_code=400, detail="Email already registered.")

    user = User(
        email=normalize_email(user_in.email),
        password_hash=hash_password(user_in.password),
        name=(user_in.name or "").strip() or None,
    )
    db.add(user)
    await db.commit()
    logger.info(f"👤 registered user {user.id}")
    return {"message": "User created successfully"}


@router.post("/login", response_model=Token)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db)
):
    # OAuth2 form의 username 필드에 이메일이 들어옴
    user = await authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    session_events.publish("signed_in", user)
    return Token(access_token=create_access_token(user.id), token_type="bearer")


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(current_user: User = Depends(get_current_user)):
    """
    Tokens are stateless; logging out only tells session listeners.
    The client drops its token.
    """
    session_events.publish("signed_out", current_user)
    return None


@router.get("/me", response_model=UserPublic)
async def get_my_info(current_user: User = Depends(get_current_user)):
    return current_user
