"""Project routes: details, issue listing, summary and issue creation."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from taskverse.auth import get_caller
from taskverse.database import get_db
from taskverse.schemas.issue import IssueCreate, IssueOut
from taskverse.schemas.project import ProjectOut, ProjectSummary
from taskverse.routers.responses import mutation_response
from taskverse.services import issue_service, project_service
from taskverse.services.guard import CallerContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{project_id}", response_model=ProjectOut)
def get_project(
    project_id: str,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return project_service.get_project(db, caller, project_id)


@router.get("/{project_id}/issues", response_model=list[IssueOut])
def list_issues(
    project_id: str,
    status_id: Optional[str] = Query(None),
    assignee_id: Optional[str] = Query(None),
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """List a project's issues in creation order, optionally filtered."""
    return project_service.list_issues(db, caller, project_id, status_id, assignee_id)


@router.get("/{project_id}/summary", response_model=ProjectSummary)
def project_summary(
    project_id: str,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return project_service.project_summary(db, caller, project_id)


@router.post("/{project_id}/issues", status_code=status.HTTP_201_CREATED)
def create_issue(
    project_id: str,
    payload: IssueCreate,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Create an issue; the key is allocated and the caller becomes reporter."""
    result = issue_service.create_issue(db, caller, project_id, payload)
    return mutation_response(request, db, result, IssueOut, status.HTTP_201_CREATED)
