"""Pydantic schemas for activity entries, notifications and timelines."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Literal, Optional
from pydantic import AliasChoices, BaseModel, Field

from taskverse.models.activity_log import ActivityType
from taskverse.models.notification import NotificationType
from taskverse.schemas.user import UserBrief


class ActivityOut(BaseModel):
    activity_id: int
    organization_id: str
    issue_id: Optional[str] = None
    actor_id: str
    type: ActivityType
    message: str
    metadata: Optional[dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationOut(BaseModel):
    notification_id: str
    type: NotificationType
    actor_id: str
    issue_id: Optional[str] = None
    issue_key: Optional[str] = None
    url: str
    extra: Optional[dict[str, Any]] = None
    read: bool
    created_at: datetime
    message: str = ""

    model_config = {"from_attributes": True}


class CommentOut(BaseModel):
    comment_id: int
    issue_id: str
    author_id: str
    author: UserBrief
    body: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TimelineEntry(BaseModel):
    kind: Literal["comment", "activity"]
    created_at: datetime
    comment: Optional[CommentOut] = None
    activity: Optional[ActivityOut] = None


class InboxCount(BaseModel):
    unread: int
