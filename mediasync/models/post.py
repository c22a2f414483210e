"""SQLAlchemy ORM models for feed posts."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from mediasync.database import Base
from .base import new_document_id, server_timestamp


class Post(Base):
    __tablename__ = "posts"

    id = Column(String(64), primary_key=True, default=new_document_id)
    uid = Column(String(128), nullable=False, index=True)
    author_name = Column(String(150), nullable=False)
    author_avatar = Column(String(1024), nullable=True)
    handle = Column(String(150), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=server_timestamp, nullable=False, index=True)
    comments_count = Column(Integer, nullable=False, default=0)
    retweets = Column(Integer, nullable=False, default=0)
    tag = Column(String(64), nullable=False, default="General")

    likes = relationship("PostLike", back_populates="post", cascade="all, delete-orphan", lazy="selectin")
    comments = relationship("PostComment", back_populates="post", cascade="all, delete-orphan")


class PostLike(Base):
    __tablename__ = "post_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(String(64), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=server_timestamp, nullable=False)

    post = relationship("Post", back_populates="likes")

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_likes_post_user"),)


class PostComment(Base):
    __tablename__ = "post_comments"

    id = Column(String(64), primary_key=True, default=new_document_id)
    post_id = Column(String(64), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    uid = Column(String(128), nullable=False, index=True)
    author_name = Column(String(150), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=server_timestamp, nullable=False)

    post = relationship("Post", back_populates="comments")


__all__ = ["Post", "PostLike", "PostComment"]
