"""Authorization guard.

Every mutation resolves the organization that owns the target and checks
the caller's membership before touching state. The guard fails closed: no
membership record means the caller is not authorized.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from taskverse.errors import ForbiddenError, NotAuthenticatedError, NotAuthorizedError
from taskverse.models.organization import MemberRole, Organization, OrganizationMember

logger = logging.getLogger(__name__)

ADMIN_ROLES = frozenset({MemberRole.owner, MemberRole.admin})


@dataclass(frozen=True)
class CallerContext:
    """Identity of the user behind one request, passed into every core call."""

    user_id: str
    name: str
    email: str
    org_memberships: dict[str, MemberRole] = field(default_factory=dict)


def require_caller(caller: Optional[CallerContext]) -> CallerContext:
    if caller is None:
        raise NotAuthenticatedError()
    return caller


def find_membership(db: Session, user_id: str, organization_id: str) -> Optional[OrganizationMember]:
    return (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
        .first()
    )


def authorize(db: Session, caller: Optional[CallerContext], organization_id: str) -> OrganizationMember:
    """Return the caller's membership in the organization or raise."""
    caller = require_caller(caller)
    membership = find_membership(db, caller.user_id, organization_id)
    if membership is None:
        logger.info("Denied user=%s access to organization=%s", caller.user_id, organization_id)
        raise NotAuthorizedError("You are not a member of this organization")
    return membership


def require_role(membership: OrganizationMember, roles=ADMIN_ROLES) -> OrganizationMember:
    if membership.role not in roles:
        raise ForbiddenError("This action requires an owner or admin role")
    return membership


def ensure_not_owner(organization: Organization, membership: OrganizationMember) -> None:
    """The owner's own membership can never be changed or removed."""
    if membership.user_id == organization.owner_id or membership.role == MemberRole.owner:
        raise ForbiddenError("The organization owner's membership cannot be changed or removed")
