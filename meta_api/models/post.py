from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from meta_api.database import Base
from datetime import datetime
import enum


class PostStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    PRIVATE = "private"


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    post_type = Column(String(50), default="post", nullable=False)
    title = Column(String, index=True, nullable=False)
    body = Column(Text, nullable=False, default="")
    status = Column(Enum(PostStatus), default=PostStatus.DRAFT, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    author = relationship("User", back_populates="posts", lazy="selectin")
    comments = relationship("Comment", back_populates="post", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_posts_type_status", "post_type", "status"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, type={self.post_type}, status={self.status})>"
