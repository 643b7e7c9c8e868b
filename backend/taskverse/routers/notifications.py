"""Notification inbox routes for the calling user."""
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from taskverse.auth import get_caller
from taskverse.database import get_db
from taskverse.schemas.activity import InboxCount
from taskverse.routers.responses import serialize_notifications
from taskverse.services import notification_service
from taskverse.services.guard import CallerContext, require_caller

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/")
def list_notifications(
    limit: Optional[int] = Query(None, ge=1, le=100),
    caller: Optional[CallerContext] = Depends(get_caller),
    db: Session = Depends(get_db),
):
    """Latest notifications, newest first."""
    caller = require_caller(caller)
    return serialize_notifications(db, notification_service.list_inbox(db, caller.user_id, limit))


@router.get("/count", response_model=InboxCount)
def unread_count(caller: Optional[CallerContext] = Depends(get_caller), db: Session = Depends(get_db)):
    caller = require_caller(caller)
    return InboxCount(unread=notification_service.unread_count(db, caller.user_id))


@router.post("/read")
def mark_all_read(caller: Optional[CallerContext] = Depends(get_caller), db: Session = Depends(get_db)):
    """Called when the inbox is opened."""
    caller = require_caller(caller)
    updated = notification_service.mark_all_read(db, caller.user_id)
    return {"success": True, "updated": updated}


@router.delete("/")
def clear_notifications(caller: Optional[CallerContext] = Depends(get_caller), db: Session = Depends(get_db)):
    caller = require_caller(caller)
    deleted = notification_service.clear_all(db, caller.user_id)
    return {"success": True, "deleted": deleted}
