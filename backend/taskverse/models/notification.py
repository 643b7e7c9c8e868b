"""Notification ORM model.

The row stores a structured payload; the readable message is rendered by
``notification_service.render_message`` when the inbox is served.
"""
import enum
import uuid
from sqlalchemy import Column, Boolean, String, DateTime, JSON, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from taskverse.database import Base, utcnow


class NotificationType(str, enum.Enum):
    mention = "MENTION"
    assignment = "ASSIGNMENT"


class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    type = Column(SAEnum(NotificationType), nullable=False)
    actor_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    issue_id = Column(String(36), ForeignKey("issues.issue_id"), nullable=True)
    issue_key = Column(String(20), nullable=True)
    url = Column(String(500), nullable=False)
    extra = Column(JSON, nullable=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    actor = relationship("User", foreign_keys=[actor_id])
