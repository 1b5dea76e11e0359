"""Bookmark model: a user's saved videos, grouped into named collections."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from vidsphere.db.session import Base

DEFAULT_COLLECTION = "Default"
BOOKMARK_NOTES_MAX_LENGTH = 200
COLLECTION_NAME_MAX_LENGTH = 100


class Bookmark(Base):
    __tablename__ = "bookmarks"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_bookmarks_user_video"),
        Index("ix_bookmarks_user_collection", "user_id", "collection_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    video_id = Column(Uuid, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    notes = Column(String(BOOKMARK_NOTES_MAX_LENGTH), nullable=True)
    collection_name = Column(String(COLLECTION_NAME_MAX_LENGTH), nullable=False, default=DEFAULT_COLLECTION)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="bookmarks")
    video = relationship("Video")
