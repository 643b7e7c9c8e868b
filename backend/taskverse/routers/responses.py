"""Helpers that turn service results into the JSON envelopes."""
from typing import Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from taskverse.errors import error_response
from taskverse.schemas.activity import ActivityOut, NotificationOut
from taskverse.services import notification_service


def serialize_notifications(db: Session, notifications) -> list[dict]:
    names = notification_service.actor_names(db, notifications)
    out = []
    for notification in notifications:
        item = NotificationOut.model_validate(notification)
        item.message = notification_service.render_message(notification, names.get(notification.actor_id, "Someone"))
        out.append(item.model_dump(mode="json"))
    return out


def mutation_response(
    request: Request,
    db: Session,
    result,
    schema=None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Success envelope with the emitted activity, or the failure envelope."""
    if not result.ok:
        return error_response(request, result.kind, result.message, result.details)
    data: Optional[dict] = None
    if schema is not None and result.value is not None:
        data = schema.model_validate(result.value).model_dump(mode="json")
    return JSONResponse(
        status_code=status_code,
        content={
            "success": True,
            "data": data,
            "activities": [ActivityOut.model_validate(a).model_dump(mode="json") for a in result.activities],
            "notifications": serialize_notifications(db, result.notifications),
        },
    )
