"""
Authentication router for VA Dashboard.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import EmailStr, Field
from sqlalchemy.orm import Session
from datetime import datetime
from uuid import UUID

from config.database import get_db
from config.logging import get_logger
from vadash.api.dependencies import create_access_token, get_current_active_user
from vadash.api.schemas.base import BaseSchema
from vadash.models.user import User

logger = get_logger(__name__)
router = APIRouter()


class RegisterRequest(BaseSchema):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    full_name: Optional[str] = Field(None, max_length=255)


class LoginRequest(BaseSchema):
    email: EmailStr
    password: str


class TokenResponse(BaseSchema):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseSchema):
    """User response schema."""

    id: UUID
    email: str
    full_name: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Create a staff account.

    Raises:
        HTTPException: 409 if the email is already registered
    """
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    user = User(email=email, full_name=(payload.full_name or "").strip() or None)
    user.set_password(payload.password)
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("User registered", user_id=str(user.id))
    return user


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    db: Session = Depends(get_db)
):
    """Exchange email and password for a bearer token."""
    user = db.query(User).filter(User.email == payload.email.lower()).first()
    if not user or not user.check_password(payload.password) or not user.is_active:
        logger.warning("Login failed", email=payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    user.record_login()
    db.commit()

    logger.info("User logged in", user_id=str(user.id))
    return TokenResponse(access_token=create_access_token(user))


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_active_user)):
    return current_user
