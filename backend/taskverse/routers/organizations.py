"""Organization, membership and invitation routes."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from taskverse.auth import get_caller
from taskverse.database import get_db
from taskverse.schemas.organization import (
    InvitationCreate,
    InvitationOut,
    MemberOut,
    MemberRoleUpdate,
    OrganizationCreate,
    OrganizationOut,
)
from taskverse.schemas.project import ProjectCreate, ProjectOut
from taskverse.routers.responses import mutation_response
from taskverse.services import membership_service, project_service
from taskverse.services.guard import CallerContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_organization(
    payload: OrganizationCreate,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Create an organization owned by the caller."""
    result = membership_service.create_organization(db, caller, payload.name, payload.slug)
    return mutation_response(request, db, result, OrganizationOut, status.HTTP_201_CREATED)


@router.get("/{organization_id}/members", response_model=list[MemberOut])
def list_members(
    organization_id: str,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return membership_service.list_members(db, caller, organization_id)


@router.post("/{organization_id}/invitations", status_code=status.HTTP_201_CREATED)
def invite_member(
    organization_id: str,
    payload: InvitationCreate,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Invite someone by email (owner or admin only)."""
    result = membership_service.invite_member(db, caller, organization_id, payload.email, payload.role)
    return mutation_response(request, db, result, InvitationOut, status.HTTP_201_CREATED)


@router.post("/invitations/{token}/accept")
def accept_invitation(
    token: str,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    result = membership_service.accept_invitation(db, caller, token)
    return mutation_response(request, db, result, MemberOut)


@router.patch("/{organization_id}/members/{user_id}")
def update_member_role(
    organization_id: str,
    user_id: str,
    payload: MemberRoleUpdate,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    result = membership_service.update_member_role(db, caller, organization_id, user_id, payload.role)
    return mutation_response(request, db, result, MemberOut)


@router.delete("/{organization_id}/members/{user_id}")
def remove_member(
    organization_id: str,
    user_id: str,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Remove a member; their issues in this organization are unassigned."""
    result = membership_service.remove_member(db, caller, organization_id, user_id)
    return mutation_response(request, db, result)


@router.post("/{organization_id}/projects", status_code=status.HTTP_201_CREATED)
def create_project(
    organization_id: str,
    payload: ProjectCreate,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    result = project_service.create_project(db, caller, organization_id, payload.name, payload.key, payload.type)
    return mutation_response(request, db, result, ProjectOut, status.HTTP_201_CREATED)
