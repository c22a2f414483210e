"""Live post feed, trending hashtags and author-only post management."""
from __future__ import annotations

import logging
import re
from typing import Any, Callable, Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import SessionFactory
from ..exceptions import NotFoundError, PermissionDeniedError, TransientIOError, ValidationFailure
from ..models import Post, PostComment, server_timestamp
from ..schemas import FeedPost, FeedSnapshot, Identity, LikeResult, PostAuthor, PostCommentResponse, Trend
from .identity_service import AuthSession
from .like_toggle import LikeToggle
from .realtime import POSTS_TOPIC, ChangeHub, ErrorCallback, Subscription

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#\w+", re.ASCII)


def extract_hashtags(content: str) -> list[str]:
    return HASHTAG_PATTERN.findall(content or "")


def compute_trends(contents: Sequence[str], *, limit: int = 5, fallback_tag: str = "#General") -> list[Trend]:
    """Rank hashtags across all posts by count, ties kept in first-seen order.

    With no hashtag anywhere a single ``fallback_tag`` trend counts every post.
    """

    counts: dict[str, int] = {}
    for content in contents:
        for tag in extract_hashtags(content):
            counts[tag] = counts.get(tag, 0) + 1
    if not counts:
        return [Trend(tag=fallback_tag, count=len(contents))]
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [Trend(tag=tag, count=count) for tag, count in ranked[:limit]]


def post_tag(content: str, default: str) -> str:
    tags = extract_hashtags(content)
    return tags[0][1:] if tags else default


def post_from_row(post: Post) -> FeedPost:
    return FeedPost(
        id=str(post.id),
        author_id=str(post.uid),
        author=PostAuthor(name=str(post.author_name), avatar=post.author_avatar),
        handle=str(post.handle),
        content=str(post.content),
        created_at=post.created_at,
        liked_by=frozenset(str(like.user_id) for like in post.likes),
        comments_count=int(post.comments_count or 0),
        retweets=int(post.retweets or 0),
        tag=str(post.tag),
    )


def load_feed(db: Session) -> list[FeedPost]:
    stmt = select(Post).order_by(Post.created_at.desc(), Post.id.asc())
    return [post_from_row(post) for post in db.scalars(stmt)]


class FeedAggregator:
    """Global post feed with trends recomputed from every snapshot."""

    def __init__(
        self,
        auth: AuthSession,
        session_factory: SessionFactory,
        hub: ChangeHub,
        *,
        settings: Settings | None = None,
        like_toggle: LikeToggle | None = None,
    ) -> None:
        self._auth = auth
        self._session_factory = session_factory
        self._hub = hub
        self._settings = settings or get_settings()
        self._likes = like_toggle or LikeToggle(auth, session_factory, hub)
        self._subscriptions: list[Subscription[FeedSnapshot]] = []

    def trends_for(self, posts: Iterable[FeedPost]) -> list[Trend]:
        return compute_trends(
            [post.content for post in posts],
            limit=self._settings.trend_limit,
            fallback_tag=self._settings.fallback_trend_tag,
        )

    def snapshot(self) -> FeedSnapshot:
        try:
            with self._session_factory() as db:
                posts = load_feed(db)
        except SQLAlchemyError as exc:
            raise TransientIOError("Failed to load posts") from exc
        return FeedSnapshot(posts=posts, trends=self.trends_for(posts))

    def subscribe(
        self,
        on_change: Callable[[FeedSnapshot], Any],
        *,
        on_error: ErrorCallback | None = None,
    ) -> Subscription[FeedSnapshot]:
        subscription = self._hub.subscribe(POSTS_TOPIC, self.snapshot, on_change, on_error=on_error)
        self._subscriptions = [item for item in self._subscriptions if item.active]
        self._subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    async def publish(self, author: Identity | None, content: str) -> FeedPost:
        self._auth.require_identity()
        if author is None:
            raise ValidationFailure("Sign in required")
        if not (content or "").strip():
            raise ValidationFailure("Post content is required")

        post = Post(
            uid=author.id,
            author_name=author.display_name or self._settings.placeholder_display_name,
            author_avatar=author.avatar_url,
            handle=author.handle,
            content=content,
            created_at=server_timestamp(),
            comments_count=0,
            retweets=0,
            tag=post_tag(content, self._settings.default_post_tag),
        )
        with self._session_factory() as db:
            try:
                db.add(post)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise TransientIOError("Failed to publish post") from exc
            db.refresh(post)
            published = post_from_row(post)

        self._hub.publish(POSTS_TOPIC)
        return published

    async def delete(self, post_id: str, requester_id: str) -> None:
        """Delete a post; only its author may, whatever the UI already confirmed."""

        self._auth.require_identity()
        if not requester_id:
            raise ValidationFailure("Sign in required")
        with self._session_factory() as db:
            post = db.get(Post, post_id)
            if post is None:
                self._hub.publish(POSTS_TOPIC)
                raise NotFoundError("Post not found")
            if post.uid != requester_id:
                raise PermissionDeniedError("Not allowed to delete this post")
            try:
                db.delete(post)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise TransientIOError("Failed to delete post") from exc

        logger.info("Post %s deleted by its author", post_id)
        self._hub.publish(POSTS_TOPIC)

    async def toggle_like(self, post_id: str, user_id: str, current_liked_by: Iterable[str]) -> LikeResult:
        return await self._likes.toggle(post_id, user_id, current_liked_by)

    async def add_comment(self, post_id: str, author: Identity | None, content: str) -> PostCommentResponse:
        self._auth.require_identity()
        if author is None:
            raise ValidationFailure("Sign in required")
        text = (content or "").strip()
        if not text:
            raise ValidationFailure("Comment cannot be empty")

        with self._session_factory() as db:
            post = db.get(Post, post_id)
            if post is None:
                self._hub.publish(POSTS_TOPIC)
                raise NotFoundError("Post not found")
            comment = PostComment(
                post_id=post.id,
                uid=author.id,
                author_name=author.display_name or self._settings.placeholder_display_name,
                content=text,
                created_at=server_timestamp(),
            )
            post.comments_count = Post.comments_count + 1
            try:
                db.add(comment)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise TransientIOError("Failed to add comment") from exc
            db.refresh(comment)
            response = PostCommentResponse(
                id=str(comment.id),
                post_id=str(comment.post_id),
                author_id=str(comment.uid),
                author_name=str(comment.author_name),
                content=str(comment.content),
                created_at=comment.created_at,
            )

        self._hub.publish(POSTS_TOPIC)
        return response


__all__ = [
    "FeedAggregator",
    "HASHTAG_PATTERN",
    "compute_trends",
    "extract_hashtags",
    "load_feed",
    "post_from_row",
    "post_tag",
]
