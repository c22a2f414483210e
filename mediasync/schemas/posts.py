"""Schemas for feed posts, trends and like state."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostAuthor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    avatar: str | None = None


class FeedPost(BaseModel):
    """Serialized representation of a persisted post."""

    model_config = ConfigDict(frozen=True)

    id: str
    author_id: str
    author: PostAuthor
    handle: str
    content: str
    created_at: datetime
    liked_by: frozenset[str] = frozenset()
    comments_count: int = 0
    retweets: int = 0
    tag: str = "General"

    @property
    def like_count(self) -> int:
        return len(self.liked_by)


class Trend(BaseModel):
    model_config = ConfigDict(frozen=True)

    tag: str
    count: int


class FeedSnapshot(BaseModel):
    """Envelope delivered by the live feed subscription."""

    model_config = ConfigDict(frozen=True)

    posts: list[FeedPost]
    trends: list[Trend]


class LikeResult(BaseModel):
    post_id: str
    liked: bool
    liked_by: frozenset[str]


class PostCommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    author_id: str
    author_name: str
    content: str
    created_at: datetime


class PostCreate(BaseModel):
    content: str = Field(..., max_length=280)


class LikeToggleRequest(BaseModel):
    liked_by: list[str] = Field(default_factory=list)


class PostCommentCreate(BaseModel):
    content: str = Field(..., max_length=500)


__all__ = [
    "PostAuthor",
    "FeedPost",
    "Trend",
    "FeedSnapshot",
    "LikeResult",
    "PostCommentResponse",
    "PostCreate",
    "LikeToggleRequest",
    "PostCommentCreate",
]
