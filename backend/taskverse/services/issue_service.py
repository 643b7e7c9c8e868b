"""Issue mutation pipeline.

Responsibilities:
- Authorization against the organization that owns the issue's project
- Key allocation on create, reporter pinned to the creator
- Single-field and batched edits under a row lock, one activity entry per
  changed field, in a stable field order
- Comments with mention notifications and mention-driven assignment
"""
import logging
from datetime import date
from enum import Enum
from typing import Any, Optional

from sqlalchemy.orm import Session

from taskverse.errors import NotFoundError, ValidationError
from taskverse.models.activity_log import ActivityType
from taskverse.models.comment import Comment
from taskverse.models.issue import Issue, IssuePriority, IssueType
from taskverse.models.notification import NotificationType
from taskverse.models.organization import OrganizationMember
from taskverse.models.project import Project, Status, StatusCategory
from taskverse.models.user import User
from taskverse.schemas.issue import StatusChange
from taskverse.services import activity_service
from taskverse.services.activity_service import Emission
from taskverse.services.guard import CallerContext, authorize, find_membership, require_caller
from taskverse.services.key_allocator import allocate_issue_key
from taskverse.services.mention_resolver import resolve_mentions
from taskverse.services.results import Success, mutation_boundary

logger = logging.getLogger(__name__)

FIELD_ORDER = ("status_id", "assignee_id", "priority", "type", "title", "description", "due_date")

FIELD_LABELS = {
    "priority": "priority",
    "type": "type",
    "title": "title",
    "description": "description",
    "due_date": "due date",
}


def _json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


def _load_issue(db: Session, issue_id: str, lock: bool = False) -> Issue:
    query = db.query(Issue).filter(Issue.issue_id == issue_id)
    if lock:
        query = query.with_for_update()
    issue = query.first()
    if not issue:
        raise NotFoundError("Issue not found")
    return issue


def _require_member(db: Session, user_id: str, organization_id: str) -> User:
    if find_membership(db, user_id, organization_id) is None:
        raise NotFoundError("Assignee is not a member of this organization", {"assignee_id": user_id})
    return db.get(User, user_id)


def apply_assignment(emission: Emission, issue: Issue, caller: CallerContext, assignee_id: Optional[str]) -> bool:
    """Move the issue to ``assignee_id``; returns False when nothing changed."""
    if assignee_id == issue.assignee_id:
        return False
    organization_id = issue.project.organization_id
    assignee = _require_member(emission.db, assignee_id, organization_id) if assignee_id else None
    prior_id = issue.assignee_id
    issue.assignee_id = assignee_id

    if assignee is None:
        message = f"{caller.name} unassigned {issue.key}"
    else:
        message = f"{caller.name} assigned {issue.key} to {assignee.name}"
    emission.activity(
        organization_id, issue.issue_id, caller.user_id, ActivityType.assignee_changed, message,
        {"from": prior_id, "to": assignee_id},
    )
    if assignee is not None:
        emission.notify(assignee.user_id, NotificationType.assignment, caller.user_id, issue)
    return True


def _change_status(emission: Emission, issue: Issue, caller: CallerContext, status_id: str) -> bool:
    if status_id == issue.status_id:
        return False
    target = (
        emission.db.query(Status)
        .filter(Status.status_id == status_id, Status.project_id == issue.project_id)
        .first()
    )
    if not target:
        raise NotFoundError("Status not found in this project", {"status_id": status_id})
    # Prior status comes from the locked row.
    prior = issue.status
    issue.status_id = target.status_id
    issue.status = target
    emission.activity(
        issue.project.organization_id, issue.issue_id, caller.user_id, ActivityType.status_changed,
        f"{caller.name} changed the status of {issue.key} from {prior.name} to {target.name}",
        {"from": prior.name, "to": target.name, "from_status_id": prior.status_id, "to_status_id": target.status_id},
    )
    return True


def _change_attribute(emission: Emission, issue: Issue, caller: CallerContext, field: str, value: Any) -> bool:
    if field == "title":
        value = (value or "").strip()
        if not value:
            raise ValidationError("Title cannot be empty")
    current = getattr(issue, field)
    if current == value:
        return False
    setattr(issue, field, value)
    emission.activity(
        issue.project.organization_id, issue.issue_id, caller.user_id, ActivityType.issue_updated,
        f"{caller.name} updated the {FIELD_LABELS[field]} of {issue.key}",
        {"field": field, "from": _json_value(current), "to": _json_value(value)},
    )
    return True


def _apply_edit(emission: Emission, issue: Issue, caller: CallerContext, edit) -> bool:
    if edit.field == "status_id":
        return _change_status(emission, issue, caller, edit.value)
    if edit.field == "assignee_id":
        return apply_assignment(emission, issue, caller, edit.value)
    return _change_attribute(emission, issue, caller, edit.field, edit.value)


def _apply_edits(db: Session, caller: Optional[CallerContext], issue_id: str, edits: list) -> Success:
    caller = require_caller(caller)
    if not edits:
        raise ValidationError("At least one field change is required")
    fields = [edit.field for edit in edits]
    duplicates = sorted({f for f in fields if fields.count(f) > 1})
    if duplicates:
        raise ValidationError("Each field may be changed once per request", {"duplicate_fields": duplicates})
    unknown = [f for f in fields if f not in FIELD_ORDER]
    if unknown:
        raise ValidationError("Unknown issue field", {"fields": unknown})

    issue = _load_issue(db, issue_id, lock=True)
    authorize(db, caller, issue.project.organization_id)

    emission = Emission(db)
    changed = [
        edit.field
        for edit in sorted(edits, key=lambda e: FIELD_ORDER.index(e.field))
        if _apply_edit(emission, issue, caller, edit)
    ]
    db.flush()
    if changed:
        logger.info("Issue %s updated by user=%s: %s", issue.key, caller.user_id, ", ".join(changed))
    return Success(issue, emission.activities, emission.notifications)


# --------------------------------------------------
# MUTATIONS
# --------------------------------------------------

@mutation_boundary("update_issue_field")
def update_issue_field(db: Session, caller: Optional[CallerContext], issue_id: str, edit) -> Success:
    """Apply one field edit; an edit equal to the current value is a no-op."""
    return _apply_edits(db, caller, issue_id, [edit])


@mutation_boundary("update_issue_fields")
def update_issue_fields(db: Session, caller: Optional[CallerContext], issue_id: str, edits: list) -> Success:
    """Apply several field edits in one transaction."""
    return _apply_edits(db, caller, issue_id, list(edits))


@mutation_boundary("change_issue_status")
def change_issue_status(db: Session, caller: Optional[CallerContext], issue_id: str, status_id: str) -> Success:
    return _apply_edits(db, caller, issue_id, [StatusChange(value=status_id)])


def _default_status(project: Project) -> Status:
    statuses = sorted(project.statuses, key=lambda s: s.order)
    if not statuses:
        raise ValidationError("Project has no statuses")
    for status in statuses:
        if status.category == StatusCategory.todo:
            return status
    return statuses[0]


@mutation_boundary("create_issue")
def create_issue(db: Session, caller: Optional[CallerContext], project_id: str, data) -> Success:
    """Create an issue with the next key of its project.

    The reporter is always the caller; the assignee, when given, must be a
    member of the organization.
    """
    caller = require_caller(caller)
    project = db.get(Project, project_id)
    if not project:
        raise NotFoundError("Project not found")
    authorize(db, caller, project.organization_id)

    title = (data.title or "").strip()
    if not title:
        raise ValidationError("Title cannot be empty")

    if data.status_id:
        status = (
            db.query(Status)
            .filter(Status.status_id == data.status_id, Status.project_id == project.project_id)
            .first()
        )
        if not status:
            raise NotFoundError("Status not found in this project", {"status_id": data.status_id})
    else:
        status = _default_status(project)

    if data.assignee_id:
        _require_member(db, data.assignee_id, project.organization_id)

    key = allocate_issue_key(db, project)
    issue = Issue(
        project_id=project.project_id,
        key=key,
        title=title,
        description=data.description,
        type=data.type or IssueType.task,
        priority=data.priority or IssuePriority.medium,
        status_id=status.status_id,
        assignee_id=data.assignee_id,
        reporter_id=caller.user_id,
        due_date=data.due_date,
    )
    db.add(issue)
    db.flush()

    emission = Emission(db)
    emission.activity(
        project.organization_id, issue.issue_id, caller.user_id, ActivityType.issue_created,
        f"{caller.name} created {key}", {"title": title, "status": status.name},
    )
    if issue.assignee_id:
        emission.notify(issue.assignee_id, NotificationType.assignment, caller.user_id, issue)

    logger.info("Created issue %s in project=%s by user=%s", key, project.project_id, caller.user_id)
    return Success(issue, emission.activities, emission.notifications)


@mutation_boundary("create_comment")
def create_comment(db: Session, caller: Optional[CallerContext], issue_id: str, body: str) -> Success:
    """Add a comment, notify mentioned members and assign a single mentionee."""
    caller = require_caller(caller)
    body = (body or "").strip()
    if not body:
        raise ValidationError("Comment cannot be empty")

    issue = _load_issue(db, issue_id, lock=True)
    organization_id = issue.project.organization_id
    authorize(db, caller, organization_id)

    comment = Comment(
        issue_id=issue.issue_id, author_id=caller.user_id, body=body,
        position=activity_service.next_timeline_position(db, issue.issue_id),
    )
    db.add(comment)
    db.flush()

    emission = Emission(db)
    emission.activity(
        organization_id, issue.issue_id, caller.user_id, ActivityType.comment_added,
        f"{caller.name} commented on {issue.key}", {"comment_id": comment.comment_id},
    )

    members = (
        db.query(User)
        .join(OrganizationMember, OrganizationMember.user_id == User.user_id)
        .filter(OrganizationMember.organization_id == organization_id)
        .all()
    )
    mentioned = resolve_mentions(body, members)
    for user in mentioned:
        emission.notify(
            user.user_id, NotificationType.mention, caller.user_id, issue, {"comment_id": comment.comment_id}
        )
    if len(mentioned) == 1 and mentioned[0].user_id != issue.assignee_id:
        apply_assignment(emission, issue, caller, mentioned[0].user_id)

    logger.info(
        "Comment %s added to %s by user=%s (%d mentions)",
        comment.comment_id, issue.key, caller.user_id, len(mentioned),
    )
    return Success(comment, emission.activities, emission.notifications)


# --------------------------------------------------
# READS
# --------------------------------------------------

def get_issue(db: Session, caller: Optional[CallerContext], issue_id: str) -> Issue:
    caller = require_caller(caller)
    issue = _load_issue(db, issue_id)
    authorize(db, caller, issue.project.organization_id)
    return issue


def get_timeline(db: Session, caller: Optional[CallerContext], issue_id: str) -> list:
    issue = get_issue(db, caller, issue_id)
    return activity_service.build_timeline(db, issue.issue_id)
