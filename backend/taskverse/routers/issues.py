"""Issue routes: edits, status moves, comments and the timeline."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from taskverse.auth import get_caller
from taskverse.database import get_db
from taskverse.schemas.activity import ActivityOut, CommentOut, TimelineEntry
from taskverse.schemas.issue import CommentCreate, CommentPosted, IssueOut, IssueUpdate, StatusMove
from taskverse.routers.responses import mutation_response
from taskverse.services import issue_service
from taskverse.services.guard import CallerContext

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{issue_id}", response_model=IssueOut)
def get_issue(
    issue_id: str,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    return issue_service.get_issue(db, caller, issue_id)


@router.patch("/{issue_id}")
def update_issue(
    issue_id: str,
    payload: IssueUpdate,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Apply one or more field edits in a single transaction."""
    if len(payload.edits) == 1:
        result = issue_service.update_issue_field(db, caller, issue_id, payload.edits[0])
    else:
        result = issue_service.update_issue_fields(db, caller, issue_id, payload.edits)
    return mutation_response(request, db, result, IssueOut)


@router.post("/{issue_id}/status")
def change_status(
    issue_id: str,
    payload: StatusMove,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Move an issue to another status of its project."""
    result = issue_service.change_issue_status(db, caller, issue_id, payload.status_id)
    return mutation_response(request, db, result, IssueOut)


@router.post("/{issue_id}/comments", status_code=status.HTTP_201_CREATED)
def create_comment(
    issue_id: str,
    payload: CommentCreate,
    request: Request,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Post a comment; the issue is returned too since a mention can reassign it."""
    result = issue_service.create_comment(db, caller, issue_id, payload.body)
    if result.ok:
        comment = result.value
        result.value = {"comment": comment, "issue": comment.issue}
    return mutation_response(request, db, result, CommentPosted, status.HTTP_201_CREATED)


@router.get("/{issue_id}/timeline", response_model=list[TimelineEntry])
def get_timeline(
    issue_id: str,
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Comments and activity entries merged oldest first."""
    entries = []
    for kind, item in issue_service.get_timeline(db, caller, issue_id):
        if kind == "comment":
            entries.append(TimelineEntry(kind=kind, created_at=item.created_at, comment=CommentOut.model_validate(item)))
        else:
            entries.append(TimelineEntry(kind=kind, created_at=item.created_at, activity=ActivityOut.model_validate(item)))
    return entries
