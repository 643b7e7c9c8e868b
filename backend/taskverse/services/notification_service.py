"""Notification inbox: listing, counting, mark-read and clear."""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from taskverse.config import settings
from taskverse.models.notification import Notification, NotificationType
from taskverse.models.user import User

logger = logging.getLogger(__name__)


def render_message(notification: Notification, actor_name: str) -> str:
    """Plain-text inbox message for a stored notification payload."""
    if notification.type == NotificationType.mention:
        return f"{actor_name} mentioned you in {notification.issue_key}"
    return f"{actor_name} assigned you to {notification.issue_key}"


def list_inbox(db: Session, user_id: str, limit: Optional[int] = None) -> list[Notification]:
    if limit is None:
        limit = settings.NOTIFICATION_INBOX_LIMIT
    return (
        db.query(Notification)
        .filter(Notification.recipient_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
        .all()
    )


def unread_count(db: Session, user_id: str) -> int:
    return (
        db.query(Notification)
        .filter(Notification.recipient_id == user_id, Notification.read.is_(False))
        .count()
    )


def mark_all_read(db: Session, user_id: str) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.recipient_id == user_id, Notification.read.is_(False))
        .update({Notification.read: True}, synchronize_session=False)
    )
    db.commit()
    logger.info("Marked %d notifications read for user=%s", updated, user_id)
    return updated


def clear_all(db: Session, user_id: str) -> int:
    deleted = (
        db.query(Notification)
        .filter(Notification.recipient_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info("Cleared %d notifications for user=%s", deleted, user_id)
    return deleted


def actor_names(db: Session, notifications: list[Notification]) -> dict[str, str]:
    ids = {n.actor_id for n in notifications}
    if not ids:
        return {}
    return {u.user_id: u.name for u in db.query(User).filter(User.user_id.in_(ids)).all()}
