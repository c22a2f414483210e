"""Conversation and messaging API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..database import SessionFactory, get_session_factory
from ..exceptions import NotFoundError, PermissionDeniedError
from ..models import Chat
from ..schemas import (
    ChatMessage,
    Conversation,
    ConversationCreateRequest,
    ConversationListItem,
    Identity,
    MessageSendRequest,
    SendReceipt,
)
from ..services import (
    AuthSession,
    ChangeHub,
    ConversationStore,
    MessageStream,
    SessionKeyResolver,
    get_change_hub,
    get_current_identity,
    load_identity,
)

router = APIRouter(prefix="/chats", tags=["chats"])


def require_participant(session_factory: SessionFactory, chat_id: str, identity: Identity) -> None:
    with session_factory() as db:
        chat = db.get(Chat, chat_id)
        if chat is None:
            raise NotFoundError("Conversation not found")
        if identity.id not in {participant.user_id for participant in chat.participants}:
            raise PermissionDeniedError("Not a participant of this conversation")


@router.get("", response_model=list[ConversationListItem])
async def list_conversations(
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> list[ConversationListItem]:
    return ConversationStore(AuthSession(identity=identity), session_factory, hub).snapshot(identity.id)


@router.post("", response_model=Conversation)
async def open_conversation(
    payload: ConversationCreateRequest,
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> Conversation:
    """Return the caller's conversation with ``remote_uid``, creating it on first contact."""

    with session_factory() as db:
        remote = load_identity(db, payload.remote_uid)
    if remote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    auth = AuthSession(identity=identity)
    existing = [item.conversation for item in ConversationStore(auth, session_factory, hub).snapshot(identity.id)]
    return await SessionKeyResolver(auth, session_factory, hub).resolve(identity, remote, existing)


@router.get("/{chat_id}/messages", response_model=list[ChatMessage])
async def read_messages(
    chat_id: str,
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> list[ChatMessage]:
    require_participant(session_factory, chat_id, identity)
    return MessageStream(AuthSession(identity=identity), session_factory, hub).snapshot(chat_id)


@router.post("/{chat_id}/messages", response_model=SendReceipt, status_code=status.HTTP_201_CREATED)
async def send_message(
    chat_id: str,
    payload: MessageSendRequest,
    identity: Identity = Depends(get_current_identity),
    session_factory: SessionFactory = Depends(get_session_factory),
    hub: ChangeHub = Depends(get_change_hub),
) -> SendReceipt:
    store = ConversationStore(AuthSession(identity=identity), session_factory, hub)
    return await store.send_message(chat_id, identity.id, payload.text)


__all__ = ["router", "require_participant"]
