"""Pydantic schemas for Organizations, members and invitations."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from taskverse.models.organization import MemberRole
from taskverse.schemas.user import UserBrief


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    slug: Optional[str] = Field(None, max_length=100)


class OrganizationOut(BaseModel):
    organization_id: str
    name: str
    slug: str
    owner_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberOut(BaseModel):
    organization_id: str
    user_id: str
    role: MemberRole
    joined_at: datetime
    user: UserBrief

    model_config = {"from_attributes": True}


class MemberRoleUpdate(BaseModel):
    role: MemberRole


class InvitationCreate(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=255)
    role: MemberRole = MemberRole.member


class InvitationOut(BaseModel):
    invitation_id: str
    organization_id: str
    email: str
    role: MemberRole
    token: str
    expires_at: datetime

    model_config = {"from_attributes": True}
