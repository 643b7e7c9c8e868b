"""Project and Status ORM models."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from taskverse.database import Base, utcnow


class ProjectType(str, enum.Enum):
    kanban = "KANBAN"
    scrum = "SCRUM"


class StatusCategory(str, enum.Enum):
    todo = "TODO"
    in_progress = "IN_PROGRESS"
    done = "DONE"


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (UniqueConstraint("organization_id", "key", name="uq_project_org_key"),)

    project_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), ForeignKey("organizations.organization_id"), nullable=False, index=True)
    name = Column(String(150), nullable=False)
    key = Column(String(5), nullable=False)
    type = Column(SAEnum(ProjectType), nullable=False, default=ProjectType.kanban)
    lead_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    # Last issue number handed out; only the key allocator writes it.
    issue_counter = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    organization = relationship("Organization")
    statuses = relationship(
        "Status", back_populates="project", cascade="all, delete-orphan", order_by="Status.order"
    )


class Status(Base):
    __tablename__ = "statuses"

    status_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    project_id = Column(String(36), ForeignKey("projects.project_id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    category = Column(SAEnum(StatusCategory), nullable=False, default=StatusCategory.todo)
    order = Column(Integer, nullable=False, default=0)

    project = relationship("Project", back_populates="statuses")
