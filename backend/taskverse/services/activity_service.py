"""Activity log and notification emission.

Entries and notifications are written into the caller's session so they
commit or roll back together with the state change that produced them.
"""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from taskverse.database import as_utc
from taskverse.models.activity_log import ActivityLog, ActivityType
from taskverse.models.comment import Comment
from taskverse.models.issue import Issue
from taskverse.models.notification import Notification, NotificationType

logger = logging.getLogger(__name__)


def issue_url(issue: Issue) -> str:
    project = issue.project
    return f"/{project.organization.slug}/{project.key}/issues/{issue.key}"


def next_timeline_position(db: Session, issue_id: str) -> int:
    """Reserve the next timeline position of an issue in the current transaction."""
    # updated_at is carried over: a new timeline entry is not an edit of the issue.
    db.query(Issue).filter(Issue.issue_id == issue_id).update(
        {Issue.timeline_counter: Issue.timeline_counter + 1, Issue.updated_at: Issue.updated_at},
        synchronize_session=False,
    )
    return db.query(Issue.timeline_counter).filter(Issue.issue_id == issue_id).scalar()


def record_activity(
    db: Session,
    organization_id: str,
    issue_id: Optional[str],
    actor_id: str,
    type: ActivityType,
    message: str,
    metadata: Optional[dict[str, Any]] = None,
) -> ActivityLog:
    entry = ActivityLog(
        organization_id=organization_id,
        issue_id=issue_id,
        actor_id=actor_id,
        type=type,
        message=message,
        metadata_=metadata,
        position=next_timeline_position(db, issue_id) if issue_id else None,
    )
    db.add(entry)
    db.flush()
    return entry


def notify(
    db: Session,
    recipient_id: str,
    type: NotificationType,
    actor_id: str,
    issue: Issue,
    extra: Optional[dict[str, Any]] = None,
) -> Optional[Notification]:
    """Queue a notification; nobody is notified about their own action."""
    if recipient_id == actor_id:
        return None
    payload = {"issue_title": issue.title}
    payload.update(extra or {})
    notification = Notification(
        recipient_id=recipient_id,
        type=type,
        actor_id=actor_id,
        issue_id=issue.issue_id,
        issue_key=issue.key,
        url=issue_url(issue),
        extra=payload,
    )
    db.add(notification)
    db.flush()
    return notification


class Emission:
    """Collects what one mutation writes to the log and to inboxes."""

    def __init__(self, db: Session):
        self.db = db
        self.activities: list[ActivityLog] = []
        self.notifications: list[Notification] = []

    def activity(self, organization_id, issue_id, actor_id, type, message, metadata=None) -> ActivityLog:
        entry = record_activity(self.db, organization_id, issue_id, actor_id, type, message, metadata)
        self.activities.append(entry)
        return entry

    def notify(self, recipient_id, type, actor_id, issue, extra=None) -> Optional[Notification]:
        notification = notify(self.db, recipient_id, type, actor_id, issue, extra)
        if notification is not None:
            self.notifications.append(notification)
        return notification


def build_timeline(db: Session, issue_id: str) -> list[tuple[str, Any]]:
    """Comments and activity entries of an issue, oldest first.

    Equal timestamps keep insertion order, which the per-issue position
    records across both tables.
    """
    comments = db.query(Comment).filter(Comment.issue_id == issue_id).all()
    activities = db.query(ActivityLog).filter(ActivityLog.issue_id == issue_id).all()
    entries = [("comment", c) for c in comments] + [("activity", a) for a in activities]
    entries.sort(key=lambda e: (as_utc(e[1].created_at), e[1].position or 0))
    return entries
