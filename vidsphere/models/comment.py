"""Threaded comment model for videos and articles."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from vidsphere.db.session import Base


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (Index("ix_comments_content", "content_type", "content_id", "parent_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content_type = Column(String(20), nullable=False)  # Video | Article
    content_id = Column(Uuid, nullable=False)
    parent_id = Column(Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)
    text = Column(Text, nullable=False)
    replies_count = Column(Integer, nullable=False, default=0)  # active children only
    is_edited = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)  # soft-delete flag, rows are never removed
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="comments")
    parent = relationship("Comment", remote_side="Comment.id")
