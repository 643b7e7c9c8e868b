"""Issue ORM model."""
import enum
import uuid
from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from taskverse.database import Base, utcnow


class IssueType(str, enum.Enum):
    story = "STORY"
    task = "TASK"
    bug = "BUG"
    epic = "EPIC"


class IssuePriority(str, enum.Enum):
    none = "NONE"
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"
    critical = "CRITICAL"


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (UniqueConstraint("project_id", "key", name="uq_issue_project_key"),)

    issue_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(String(36), ForeignKey("projects.project_id"), nullable=False, index=True)
    key = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(SAEnum(IssueType), nullable=False, default=IssueType.task)
    priority = Column(SAEnum(IssuePriority), nullable=False, default=IssuePriority.medium)
    status_id = Column(String(36), ForeignKey("statuses.status_id"), nullable=False)
    assignee_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    reporter_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    # Last position handed out to a comment or activity entry of this issue.
    timeline_counter = Column(Integer, nullable=False, default=0)

    project = relationship("Project")
    status = relationship("Status")
    assignee = relationship("User", foreign_keys=[assignee_id])
    reporter = relationship("User", foreign_keys=[reporter_id])
    comments = relationship(
        "Comment", back_populates="issue", cascade="all, delete-orphan", order_by="Comment.comment_id"
    )
