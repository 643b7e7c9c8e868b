"""Issue key allocation.

Keys have the form ``PROJECTKEY-N``. Numbers come from the project's
``issue_counter`` column, bumped with a single UPDATE inside the
issue-creation transaction, so two concurrent creations can never read the
same value. The (project_id, key) unique constraint is the backstop.
"""
import re
from typing import Optional

from sqlalchemy.orm import Session

from taskverse.errors import ValidationError
from taskverse.models.project import Project

PROJECT_KEY_PATTERN = re.compile(r"^[A-Z0-9]{2,5}$")
KEY_PATTERN = re.compile(r"^(?P<project>[A-Z0-9]{2,5})-(?P<number>[1-9][0-9]*)$")


def format_key(project_key: str, number: int) -> str:
    return f"{project_key}-{number}"


def parse_key_number(issue_key: str) -> int:
    match = KEY_PATTERN.match(issue_key or "")
    if not match:
        raise ValidationError(f"Malformed issue key: {issue_key!r}")
    return int(match.group("number"))


def next_key(project_key: str, last_issue_key: Optional[str]) -> str:
    """Key following ``last_issue_key``; the first key of a project ends in 1."""
    if not PROJECT_KEY_PATTERN.match(project_key or ""):
        raise ValidationError(f"Malformed project key: {project_key!r}")
    if last_issue_key is None:
        return format_key(project_key, 1)
    match = KEY_PATTERN.match(last_issue_key)
    if not match or match.group("project") != project_key:
        raise ValidationError(f"Malformed issue key: {last_issue_key!r}")
    return format_key(project_key, int(match.group("number")) + 1)


def allocate_issue_key(db: Session, project: Project) -> str:
    """Reserve the next key for ``project`` in the current transaction."""
    db.query(Project).filter(Project.project_id == project.project_id).update(
        {Project.issue_counter: Project.issue_counter + 1}, synchronize_session=False
    )
    number = (
        db.query(Project.issue_counter)
        .filter(Project.project_id == project.project_id)
        .scalar()
    )
    db.expire(project, ["issue_counter"])
    return format_key(project.key, number)
