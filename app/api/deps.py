"""Shared API dependencies."""
from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.security import ACCESS_TOKEN, InvalidTokenError, decode_token
from app.db.models.user import User
from app.db.session import get_db
from app.schemas import TokenPayload
from app.services.analytics import AnalyticsService
from app.services.flashcards import FlashcardService
from app.services.progress import ProgressService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def get_current_user(
    token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> User:
    """Resolve the authenticated user from the Authorization header."""

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not token:
        raise credentials_exception

    try:
        payload = decode_token(token, expected_type=ACCESS_TOKEN)
        token_data = TokenPayload.model_validate(payload)
    except (InvalidTokenError, ValidationError, ValueError, KeyError) as exc:
        raise credentials_exception from exc

    user_id = uuid.UUID(str(token_data.sub))
    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise credentials_exception
    return user


def get_flashcard_service(db: Session = Depends(get_db)) -> FlashcardService:
    """Return the content store bound to the request session."""

    return FlashcardService(db)


def get_progress_service(db: Session = Depends(get_db)) -> ProgressService:
    """Return the study event store bound to the request session."""

    return ProgressService(db)


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    """Return the progress aggregator bound to the request session."""

    return AnalyticsService(db)
