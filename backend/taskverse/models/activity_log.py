"""ActivityLog ORM model: the append-only audit trail."""
import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, JSON, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship
from taskverse.database import Base, utcnow


class ActivityType(str, enum.Enum):
    status_changed = "STATUS_CHANGED"
    assignee_changed = "ASSIGNEE_CHANGED"
    comment_added = "COMMENT_ADDED"
    issue_created = "ISSUE_CREATED"
    issue_updated = "ISSUE_UPDATED"
    project_created = "PROJECT_CREATED"
    member_invited = "MEMBER_INVITED"
    member_joined = "MEMBER_JOINED"
    member_role_changed = "MEMBER_ROLE_CHANGED"
    member_removed = "MEMBER_REMOVED"


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    activity_id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(String(36), ForeignKey("organizations.organization_id"), nullable=False, index=True)
    issue_id = Column(String(36), ForeignKey("issues.issue_id"), nullable=True, index=True)
    actor_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    type = Column(SAEnum(ActivityType), nullable=False)
    message = Column(Text, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=True)
    # Order among the entries of one issue; empty for organization-level entries.
    position = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    actor = relationship("User")
