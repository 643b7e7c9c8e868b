"""Organizations, invitations and memberships.

Administrative actions (invite, role change, removal) require an OWNER or
ADMIN membership. The owner's own membership is never changed or removed.
"""
import logging
import re
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from taskverse.config import settings
from taskverse.database import as_utc, utcnow
from taskverse.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from taskverse.models.activity_log import ActivityType
from taskverse.models.issue import Issue
from taskverse.models.organization import Invitation, MemberRole, Organization, OrganizationMember
from taskverse.models.project import Project
from taskverse.models.user import User
from taskverse.services.activity_service import Emission
from taskverse.services.guard import (
    CallerContext,
    authorize,
    ensure_not_owner,
    find_membership,
    require_caller,
    require_role,
)
from taskverse.services.issue_service import apply_assignment
from taskverse.services.results import Success, mutation_boundary

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _get_organization(db: Session, organization_id: str) -> Organization:
    organization = db.get(Organization, organization_id)
    if not organization:
        raise NotFoundError("Organization not found")
    return organization


@mutation_boundary("create_organization")
def create_organization(
    db: Session, caller: Optional[CallerContext], name: str, slug: Optional[str] = None
) -> Success:
    """Create an organization with the caller as its OWNER."""
    caller = require_caller(caller)
    name = (name or "").strip()
    if len(name) < 2:
        raise ValidationError("Organization name must be at least 2 characters")
    slug = slugify(slug or name)
    if not slug:
        raise ValidationError("Organization slug cannot be empty")
    if db.query(Organization).filter(Organization.slug == slug).first():
        raise ConflictError("An organization with this slug already exists", {"slug": slug})

    organization = Organization(name=name, slug=slug, owner_id=caller.user_id)
    db.add(organization)
    db.flush()
    db.add(OrganizationMember(
        organization_id=organization.organization_id, user_id=caller.user_id, role=MemberRole.owner,
    ))
    db.flush()

    emission = Emission(db)
    emission.activity(
        organization.organization_id, None, caller.user_id, ActivityType.member_joined,
        f"{caller.name} created the organization {name}", {"user_id": caller.user_id, "role": "OWNER"},
    )
    logger.info("Created organization %s (%s) for user=%s", slug, organization.organization_id, caller.user_id)
    return Success(organization, emission.activities, emission.notifications)


def list_members(db: Session, caller: Optional[CallerContext], organization_id: str) -> list[OrganizationMember]:
    _get_organization(db, organization_id)
    authorize(db, caller, organization_id)
    return (
        db.query(OrganizationMember)
        .filter(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.joined_at)
        .all()
    )


@mutation_boundary("invite_member")
def invite_member(
    db: Session, caller: Optional[CallerContext], organization_id: str, email: str, role: MemberRole
) -> Success:
    caller = require_caller(caller)
    _get_organization(db, organization_id)
    require_role(authorize(db, caller, organization_id))
    if role == MemberRole.owner:
        raise ValidationError("Invitations can only grant ADMIN or MEMBER")

    email = email.strip().lower()
    invitee = db.query(User).filter(User.email == email).first()
    if invitee and find_membership(db, invitee.user_id, organization_id):
        raise ConflictError("This user is already a member of the organization")
    pending = (
        db.query(Invitation)
        .filter(Invitation.organization_id == organization_id, Invitation.email == email)
        .all()
    )
    if any(as_utc(inv.expires_at) > utcnow() for inv in pending):
        raise ConflictError("An invitation is already pending for this email")

    invitation = Invitation(
        organization_id=organization_id,
        email=email,
        role=role,
        token=secrets.token_urlsafe(32),
        invited_by_id=caller.user_id,
        expires_at=utcnow() + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
    )
    db.add(invitation)
    db.flush()

    emission = Emission(db)
    emission.activity(
        organization_id, None, caller.user_id, ActivityType.member_invited,
        f"{caller.name} invited {email} as {role.value}", {"email": email, "role": role.value},
    )
    logger.info("User=%s invited %s to organization=%s", caller.user_id, email, organization_id)
    return Success(invitation, emission.activities, emission.notifications)


@mutation_boundary("accept_invitation")
def accept_invitation(db: Session, caller: Optional[CallerContext], token: str) -> Success:
    caller = require_caller(caller)
    invitation = db.query(Invitation).filter(Invitation.token == token).first()
    if not invitation:
        raise NotFoundError("Invitation not found")
    if as_utc(invitation.expires_at) <= utcnow():
        raise ValidationError("This invitation has expired")
    if caller.email.lower() != invitation.email:
        raise ForbiddenError("This invitation was sent to a different email address")
    if find_membership(db, caller.user_id, invitation.organization_id):
        raise ConflictError("You are already a member of this organization")

    organization_id = invitation.organization_id
    role = invitation.role
    membership = OrganizationMember(organization_id=organization_id, user_id=caller.user_id, role=role)
    db.add(membership)
    db.delete(invitation)
    db.flush()

    emission = Emission(db)
    emission.activity(
        organization_id, None, caller.user_id, ActivityType.member_joined,
        f"{caller.name} joined the organization", {"user_id": caller.user_id, "role": role.value},
    )
    logger.info("User=%s joined organization=%s as %s", caller.user_id, organization_id, role.value)
    return Success(membership, emission.activities, emission.notifications)


@mutation_boundary("update_member_role")
def update_member_role(
    db: Session, caller: Optional[CallerContext], organization_id: str, user_id: str, role: MemberRole
) -> Success:
    caller = require_caller(caller)
    organization = _get_organization(db, organization_id)
    require_role(authorize(db, caller, organization_id))
    target = find_membership(db, user_id, organization_id)
    if not target:
        raise NotFoundError("Member not found")
    ensure_not_owner(organization, target)
    if role == MemberRole.owner:
        raise ValidationError("Ownership cannot be granted through a role change")

    emission = Emission(db)
    if target.role != role:
        prior = target.role
        target.role = role
        emission.activity(
            organization_id, None, caller.user_id, ActivityType.member_role_changed,
            f"{caller.name} changed the role of {target.user.name} from {prior.value} to {role.value}",
            {"user_id": user_id, "from": prior.value, "to": role.value},
        )
        db.flush()
        logger.info("Role of user=%s in organization=%s set to %s", user_id, organization_id, role.value)
    return Success(target, emission.activities, emission.notifications)


@mutation_boundary("remove_member")
def remove_member(db: Session, caller: Optional[CallerContext], organization_id: str, user_id: str) -> Success:
    """Remove a member and unassign every issue they held in the organization."""
    caller = require_caller(caller)
    organization = _get_organization(db, organization_id)
    require_role(authorize(db, caller, organization_id))
    target = find_membership(db, user_id, organization_id)
    if not target:
        raise NotFoundError("Member not found")
    ensure_not_owner(organization, target)

    emission = Emission(db)
    assigned = (
        db.query(Issue)
        .join(Project, Project.project_id == Issue.project_id)
        .filter(Project.organization_id == organization_id, Issue.assignee_id == user_id)
        .order_by(Issue.created_at)
        .with_for_update()
        .all()
    )
    for issue in assigned:
        apply_assignment(emission, issue, caller, None)

    name = target.user.name
    db.delete(target)
    db.flush()
    emission.activity(
        organization_id, None, caller.user_id, ActivityType.member_removed,
        f"{caller.name} removed {name} from the organization",
        {"user_id": user_id, "unassigned_issues": [issue.key for issue in assigned]},
    )
    logger.info("Removed user=%s from organization=%s (%d issues unassigned)", user_id, organization_id, len(assigned))
    return Success(None, emission.activities, emission.notifications)
