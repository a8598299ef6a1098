"""Pydantic models for user API interactions."""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserBase(BaseModel):
    """Shared properties of user representations."""

    username: str = Field(
        min_length=3,
        max_length=20,
        pattern=r"^[a-zA-Z0-9_]+$",
        description="Letters, numbers and underscores only",
    )
    email: EmailStr


class UserCreate(UserBase):
    """Schema for user registration input."""

    password: str = Field(min_length=6, max_length=128)


class UserLogin(BaseModel):
    """Schema for user login request."""

    email: EmailStr
    password: str = Field(min_length=1)


class UserRead(UserBase):
    """Schema returned after registration or for the current user."""

    id: uuid.UUID
    is_active: bool
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
