"""Authentication API endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.config import settings
from app.db.models.user import User
from app.schemas import Token, UserCreate, UserLogin, UserRead
from app.services.auth import (
    AuthService,
    InvalidCredentialsError,
    UserAlreadyExistsError,
    handle_invalid_credentials,
    handle_user_exists,
)


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(payload: UserCreate, db: Session = Depends(get_db)) -> UserRead:
    """Register a new user and return the created entity."""

    service = AuthService(db)
    try:
        user = service.register_user(payload)
    except UserAlreadyExistsError as exc:
        handle_user_exists(exc)
    return user


@router.post("/login", response_model=Token)
def login(payload: UserLogin, db: Session = Depends(get_db)) -> Token:
    """Authenticate a user and return JWT tokens."""

    service = AuthService(db)
    try:
        user = service.authenticate_user(payload.email, payload.password)
        return service.create_tokens(user)
    except InvalidCredentialsError as exc:
        # Developer convenience: optionally create the user on first login attempt in dev
        if settings.AUTO_CREATE_USERS_ON_LOGIN:
            try:
                created = service.register_user(
                    UserCreate(
                        username=payload.email.split("@")[0][:20],
                        email=payload.email,
                        password=payload.password,
                    )
                )
                return service.create_tokens(created)
            except (UserAlreadyExistsError, ValueError):
                # If a user exists with a different password, still return 401
                pass
        handle_invalid_credentials(exc)


@router.get("/me", response_model=UserRead)
def read_current_user(current_user: User = Depends(get_current_user)) -> UserRead:
    """Return the authenticated user profile."""

    return current_user
