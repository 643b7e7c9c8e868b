"""Pydantic schemas for Projects and Statuses."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from taskverse.models.project import ProjectType, StatusCategory
from taskverse.schemas.activity import ActivityOut


class StatusOut(BaseModel):
    status_id: str
    name: str
    category: StatusCategory
    order: int

    model_config = {"from_attributes": True}


class ProjectCreate(BaseModel):
    name: str = Field(..., max_length=150)
    key: str = Field(..., max_length=10)
    type: ProjectType = ProjectType.kanban


class ProjectOut(BaseModel):
    project_id: str
    organization_id: str
    name: str
    key: str
    type: ProjectType
    lead_id: Optional[str] = None
    issue_counter: int
    created_at: datetime
    statuses: list[StatusOut] = []

    model_config = {"from_attributes": True}


class StatusCount(BaseModel):
    status_id: str
    name: str
    category: StatusCategory
    count: int


class ProjectSummary(BaseModel):
    project_id: str
    total: int
    open: int
    done: int
    by_status: list[StatusCount]
    recent_activity: list[ActivityOut]
