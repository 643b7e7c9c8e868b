"""Pydantic schemas for Issues and the closed set of field edits.

An edit names exactly one field through its ``field`` tag; the union is
discriminated on it so unknown fields are rejected at the edge.
"""
from __future__ import annotations
from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field

from taskverse.models.issue import IssuePriority, IssueType
from taskverse.schemas.activity import CommentOut
from taskverse.schemas.project import StatusOut
from taskverse.schemas.user import UserBrief


class StatusChange(BaseModel):
    field: Literal["status_id"] = "status_id"
    value: str


class AssigneeChange(BaseModel):
    field: Literal["assignee_id"] = "assignee_id"
    value: Optional[str] = None


class PriorityChange(BaseModel):
    field: Literal["priority"] = "priority"
    value: IssuePriority


class TypeChange(BaseModel):
    field: Literal["type"] = "type"
    value: IssueType


class TitleChange(BaseModel):
    field: Literal["title"] = "title"
    value: str = Field(..., min_length=1, max_length=255)


class DescriptionChange(BaseModel):
    field: Literal["description"] = "description"
    value: Optional[str] = None


class DueDateChange(BaseModel):
    field: Literal["due_date"] = "due_date"
    value: Optional[date] = None


FieldEdit = Annotated[
    Union[StatusChange, AssigneeChange, PriorityChange, TypeChange, TitleChange, DescriptionChange, DueDateChange],
    Field(discriminator="field"),
]


class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    type: IssueType = IssueType.task
    priority: IssuePriority = IssuePriority.medium
    status_id: Optional[str] = None
    assignee_id: Optional[str] = None
    due_date: Optional[date] = None


class IssueUpdate(BaseModel):
    edits: list[FieldEdit] = Field(..., min_length=1)


class StatusMove(BaseModel):
    status_id: str


class CommentCreate(BaseModel):
    body: str = Field(..., max_length=10000)


class IssueOut(BaseModel):
    issue_id: str
    project_id: str
    key: str
    title: str
    description: Optional[str] = None
    type: IssueType
    priority: IssuePriority
    status_id: str
    status: StatusOut
    assignee_id: Optional[str] = None
    assignee: Optional[UserBrief] = None
    reporter_id: str
    reporter: UserBrief
    due_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommentPosted(BaseModel):
    """A new comment and its issue as it stands afterwards."""

    comment: CommentOut
    issue: IssueOut

    model_config = {"from_attributes": True}
