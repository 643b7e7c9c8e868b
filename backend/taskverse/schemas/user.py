"""Pydantic schemas for Users."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    avatar_url: Optional[str] = None


class UserBrief(BaseModel):
    user_id: str
    name: str
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class UserOut(BaseModel):
    user_id: str
    name: str
    email: str
    avatar_url: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSession(BaseModel):
    user: UserOut
    access_token: str
    token_type: str = "bearer"
