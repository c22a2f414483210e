"""Idempotent like-set mutation for posts."""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import SessionFactory
from ..exceptions import NotFoundError, TransientIOError, ValidationFailure
from ..models import Post, PostLike
from ..schemas import LikeResult
from .identity_service import AuthSession
from .realtime import POSTS_TOPIC, ChangeHub

logger = logging.getLogger(__name__)


def toggled_membership(user_id: str, current: Iterable[str]) -> tuple[bool, frozenset[str]]:
    """Return ``(now_liked, new_set)`` for flipping ``user_id`` in ``current``."""

    members = frozenset(current)
    if user_id in members:
        return False, members - {user_id}
    return True, members | {user_id}


def liked_by(db: Session, post_id: str) -> frozenset[str]:
    return frozenset(db.scalars(select(PostLike.user_id).where(PostLike.post_id == post_id)))


def set_like_state(db: Session, *, post_id: str, user_id: str, should_like: bool) -> frozenset[str]:
    """Add or remove one member of the post's like set and return the stored set."""

    if db.get(Post, post_id) is None:
        raise NotFoundError("Post not found")

    existing = db.scalar(select(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id))
    if should_like and existing is None:
        db.add(PostLike(post_id=post_id, user_id=user_id))
    elif not should_like and existing is not None:
        db.delete(existing)

    try:
        db.commit()
    except IntegrityError:
        # Another writer added the same pair first; the union already holds.
        db.rollback()
    except SQLAlchemyError as exc:
        db.rollback()
        raise TransientIOError("Failed to update like") from exc

    return liked_by(db, post_id)


class LikeToggle:
    """Flips the caller's membership in a post's like set.

    The decision comes from ``current_liked_by``: callers must pass the set
    from the latest live snapshot. Repeating a call with the same stale set
    repeats the same idempotent write and never adds a member twice.
    """

    def __init__(self, auth: AuthSession, session_factory: SessionFactory, hub: ChangeHub) -> None:
        self._auth = auth
        self._session_factory = session_factory
        self._hub = hub

    async def toggle(self, post_id: str, user_id: str, current_liked_by: Iterable[str]) -> LikeResult:
        self._auth.require_identity()
        if not user_id:
            raise ValidationFailure("Sign in required")
        should_like, _ = toggled_membership(user_id, current_liked_by)
        try:
            with self._session_factory() as db:
                stored = set_like_state(db, post_id=post_id, user_id=user_id, should_like=should_like)
        except NotFoundError:
            self._hub.publish(POSTS_TOPIC)
            raise
        self._hub.publish(POSTS_TOPIC)
        return LikeResult(post_id=post_id, liked=should_like, liked_by=stored)


__all__ = ["LikeToggle", "liked_by", "set_like_state", "toggled_membership"]
