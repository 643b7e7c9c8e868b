"""Comment ORM model. Comments are immutable once written."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from taskverse.database import Base, utcnow


class Comment(Base):
    __tablename__ = "comments"

    comment_id = Column(Integer, primary_key=True, autoincrement=True)
    issue_id = Column(String(36), ForeignKey("issues.issue_id"), nullable=False, index=True)
    author_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    body = Column(Text, nullable=False)
    position = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    issue = relationship("Issue", back_populates="comments")
    author = relationship("User")
