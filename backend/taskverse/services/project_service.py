"""Projects, their default workflows, issue listings and summaries."""
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from taskverse.errors import ConflictError, NotFoundError, ValidationError
from taskverse.models.activity_log import ActivityLog, ActivityType
from taskverse.models.issue import Issue
from taskverse.models.organization import Organization
from taskverse.models.project import Project, ProjectType, Status, StatusCategory
from taskverse.services.activity_service import Emission
from taskverse.services.guard import CallerContext, authorize, require_caller
from taskverse.services.key_allocator import PROJECT_KEY_PATTERN
from taskverse.services.results import Success, mutation_boundary

logger = logging.getLogger(__name__)

DEFAULT_STATUSES = {
    ProjectType.scrum: [
        ("To Do", StatusCategory.todo),
        ("In Progress", StatusCategory.in_progress),
        ("Done", StatusCategory.done),
    ],
    ProjectType.kanban: [
        ("Backlog", StatusCategory.todo),
        ("Selected for Development", StatusCategory.todo),
        ("In Progress", StatusCategory.in_progress),
        ("Done", StatusCategory.done),
    ],
}

RECENT_ACTIVITY_LIMIT = 10


@mutation_boundary("create_project")
def create_project(
    db: Session,
    caller: Optional[CallerContext],
    organization_id: str,
    name: str,
    key: str,
    type: ProjectType = ProjectType.kanban,
) -> Success:
    """Create a project seeded with the default statuses for its type.

    Any member of the organization may create a project; the creator
    becomes its lead.
    """
    caller = require_caller(caller)
    if not db.get(Organization, organization_id):
        raise NotFoundError("Organization not found")
    authorize(db, caller, organization_id)

    name = (name or "").strip()
    if len(name) < 2:
        raise ValidationError("Project name must be at least 2 characters")
    if not PROJECT_KEY_PATTERN.match(key or ""):
        raise ValidationError("Project key must be 2-5 uppercase letters or digits", {"key": key})
    exists = (
        db.query(Project)
        .filter(Project.organization_id == organization_id, Project.key == key)
        .first()
    )
    if exists:
        raise ConflictError("A project with this key already exists", {"key": key})

    project = Project(organization_id=organization_id, name=name, key=key, type=type, lead_id=caller.user_id)
    db.add(project)
    db.flush()
    for order, (status_name, category) in enumerate(DEFAULT_STATUSES[type]):
        db.add(Status(project_id=project.project_id, name=status_name, category=category, order=order))
    db.flush()

    emission = Emission(db)
    emission.activity(
        organization_id, None, caller.user_id, ActivityType.project_created,
        f"{caller.name} created the project {name} ({key})",
        {"project_id": project.project_id, "key": key, "type": type.value},
    )
    logger.info("Created project %s in organization=%s by user=%s", key, organization_id, caller.user_id)
    return Success(project, emission.activities, emission.notifications)


def get_project(db: Session, caller: Optional[CallerContext], project_id: str) -> Project:
    caller = require_caller(caller)
    project = db.get(Project, project_id)
    if not project:
        raise NotFoundError("Project not found")
    authorize(db, caller, project.organization_id)
    return project


def list_issues(
    db: Session,
    caller: Optional[CallerContext],
    project_id: str,
    status_id: Optional[str] = None,
    assignee_id: Optional[str] = None,
) -> list[Issue]:
    project = get_project(db, caller, project_id)
    query = db.query(Issue).filter(Issue.project_id == project.project_id)
    if status_id:
        query = query.filter(Issue.status_id == status_id)
    if assignee_id:
        query = query.filter(Issue.assignee_id == assignee_id)
    return query.order_by(Issue.created_at).all()


def project_summary(db: Session, caller: Optional[CallerContext], project_id: str) -> dict:
    """Issue counts per status and open/done totals, plus recent activity."""
    project = get_project(db, caller, project_id)
    counts = dict(
        db.query(Issue.status_id, func.count(Issue.issue_id))
        .filter(Issue.project_id == project.project_id)
        .group_by(Issue.status_id)
        .all()
    )
    by_status = []
    open_count = done_count = 0
    for status in project.statuses:
        count = counts.get(status.status_id, 0)
        by_status.append({
            "status_id": status.status_id,
            "name": status.name,
            "category": status.category.value,
            "count": count,
        })
        if status.category == StatusCategory.done:
            done_count += count
        else:
            open_count += count

    recent = (
        db.query(ActivityLog)
        .join(Issue, Issue.issue_id == ActivityLog.issue_id)
        .filter(Issue.project_id == project.project_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.activity_id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )
    return {
        "project_id": project.project_id,
        "total": open_count + done_count,
        "open": open_count,
        "done": done_count,
        "by_status": by_status,
        "recent_activity": recent,
    }
