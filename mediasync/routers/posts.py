"""Feed API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from ..database import SessionFactory, get_session_factory
from ..schemas import (
    FeedPost,
    FeedSnapshot,
    Identity,
    LikeResult,
    LikeToggleRequest,
    PostCommentCreate,
    PostCommentResponse,
    PostCreate,
)
from ..services import AuthSession, ChangeHub, FeedAggregator, get_change_hub, get_current_identity

router = APIRouter(prefix="/posts", tags=["posts"])


def _feed(session_factory: SessionFactory, hub: ChangeHub, identity: Identity | None = None) -> FeedAggregator:
    return FeedAggregator(AuthSession(identity=identity), session_factory, hub)


@router.get("", response_model=FeedSnapshot)
async def read_feed(
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> FeedSnapshot:
    return _feed(session_factory, hub).snapshot()


@router.post("", response_model=FeedPost, status_code=status.HTTP_201_CREATED)
async def publish_post(
    payload: PostCreate,
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> FeedPost:
    return await _feed(session_factory, hub, identity).publish(identity, payload.content)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> Response:
    await _feed(session_factory, hub, identity).delete(post_id, identity.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=LikeResult)
async def toggle_like(
    post_id: str,
    payload: LikeToggleRequest,
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> LikeResult:
    """Flip the caller's like; ``liked_by`` must come from the latest feed snapshot."""

    return await _feed(session_factory, hub, identity).toggle_like(post_id, identity.id, payload.liked_by)


@router.post("/{post_id}/comments", response_model=PostCommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    post_id: str,
    payload: PostCommentCreate,
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> PostCommentResponse:
    return await _feed(session_factory, hub, identity).add_comment(post_id, identity, payload.content)


__all__ = ["router"]
