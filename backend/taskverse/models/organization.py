"""Organization, OrganizationMember and Invitation ORM models."""
import enum
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.orm import relationship
from taskverse.database import Base, utcnow


class MemberRole(str, enum.Enum):
    owner = "OWNER"
    admin = "ADMIN"
    member = "MEMBER"


class Organization(Base):
    __tablename__ = "organizations"

    organization_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(150), nullable=False)
    slug = Column(String(100), nullable=False, unique=True)
    owner_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    members = relationship("OrganizationMember", back_populates="organization", cascade="all, delete-orphan")


class OrganizationMember(Base):
    __tablename__ = "organization_members"
    __table_args__ = (UniqueConstraint("organization_id", "user_id", name="uq_member_org_user"),)

    member_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), ForeignKey("organizations.organization_id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=False, index=True)
    role = Column(SAEnum(MemberRole), nullable=False, default=MemberRole.member)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    organization = relationship("Organization", back_populates="members")
    user = relationship("User")


class Invitation(Base):
    __tablename__ = "invitations"

    invitation_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    organization_id = Column(String(36), ForeignKey("organizations.organization_id"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    role = Column(SAEnum(MemberRole), nullable=False, default=MemberRole.member)
    token = Column(String(100), nullable=False, unique=True)
    invited_by_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    organization = relationship("Organization")
