"""WebSocket endpoints that push live snapshots to browser clients."""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from ..database import SessionFactory, get_session_factory
from ..exceptions import SyncError
from ..schemas import ChatMessage, ConversationListItem, FeedSnapshot, Identity
from ..services import (
    AuthSession,
    ChangeHub,
    ConversationStore,
    FeedAggregator,
    MessageStream,
    get_change_hub,
    load_identity,
)
from .chats import require_participant

router = APIRouter()
logger = logging.getLogger(__name__)


async def _identify(websocket: WebSocket, session_factory: SessionFactory, uid: str) -> Identity | None:
    uid = uid.strip()
    identity = None
    if uid:
        with session_factory() as db:
            identity = load_identity(db, uid)
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    return identity


async def _receive_until_disconnect(websocket: WebSocket, label: str) -> None:
    """Answer keep-alive pings until the client goes away."""

    while True:
        try:
            raw = await websocket.receive_text()
        except WebSocketDisconnect:
            break
        except Exception:
            logger.exception("%s socket receive failed", label)
            break

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            payload = {"type": raw}
        if not isinstance(payload, dict):
            continue

        message_type = str(payload.get("type") or "").lower()
        if message_type == "ping":
            await websocket.send_text(json.dumps({"type": "pong"}))
        # All other messages are ignored, but receiving them keeps the connection alive.


@router.websocket("/ws/feed")
async def feed_updates(
    websocket: WebSocket,
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> None:
    """Push the post feed and its trends on every change."""

    await websocket.accept()

    async def _push(snapshot: FeedSnapshot) -> None:
        await websocket.send_json({"type": "feed", **snapshot.model_dump(mode="json")})

    subscription = FeedAggregator(AuthSession(), session_factory, hub).subscribe(_push)
    logger.info("Feed socket connected from %s", websocket.client)
    try:
        await _receive_until_disconnect(websocket, "Feed")
    finally:
        subscription.cancel()
        logger.info("Feed socket disconnected from %s", websocket.client)


@router.websocket("/ws/chats")
async def conversation_updates(
    websocket: WebSocket,
    uid: str = Query(default=""),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> None:
    """Push the caller's conversation list, newest activity first."""

    await websocket.accept()
    identity = await _identify(websocket, session_factory, uid)
    if identity is None:
        return

    async def _push(items: list[ConversationListItem]) -> None:
        await websocket.send_json({"type": "conversations", "items": [item.model_dump(mode="json") for item in items]})

    subscription = ConversationStore(AuthSession(identity=identity), session_factory, hub).subscribe(identity.id, _push)
    try:
        await _receive_until_disconnect(websocket, "Conversation")
    finally:
        subscription.cancel()


@router.websocket("/ws/chats/{chat_id}")
async def message_updates(
    websocket: WebSocket,
    chat_id: str,
    uid: str = Query(default=""),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> None:
    """Push one conversation's message log in chronological order."""

    await websocket.accept()
    identity = await _identify(websocket, session_factory, uid)
    if identity is None:
        return
    try:
        require_participant(session_factory, chat_id, identity)
    except SyncError as exc:
        logger.info("Refusing message socket for %s: %s", chat_id, exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    async def _push(messages: list[ChatMessage]) -> None:
        await websocket.send_json(
            {
                "type": "messages",
                "chat_id": chat_id,
                "items": [message.model_dump(mode="json") for message in messages],
            }
        )

    stream = MessageStream(AuthSession(identity=identity), session_factory, hub)
    stream.subscribe(chat_id, _push)
    try:
        await _receive_until_disconnect(websocket, "Message")
    finally:
        stream.unsubscribe()


__all__ = ["router"]
