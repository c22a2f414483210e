"""Live message log for the currently selected conversation."""
from __future__ import annotations

import logging
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import SessionFactory
from ..exceptions import TransientIOError, ValidationFailure
from ..models import Message
from ..schemas import ChatMessage
from .identity_service import AuthSession
from .realtime import ChangeHub, ErrorCallback, Subscription, chat_messages_topic

logger = logging.getLogger(__name__)

MessageLog = list[ChatMessage]


def message_from_row(message: Message) -> ChatMessage:
    return ChatMessage(
        id=int(message.id),
        conversation_id=str(message.chat_id),
        sender_id=str(message.sender_id),
        text=str(message.text),
        created_at=message.created_at,
    )


def list_messages(db: Session, *, chat_id: str) -> MessageLog:
    """Return messages for the provided chat ordered chronologically."""

    stmt = (
        select(Message)
        .where(Message.chat_id == chat_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
    )
    return [message_from_row(message) for message in db.scalars(stmt)]


class MessageStream:
    """Holds at most one live subscription: the selected conversation's log.

    Selecting another conversation detaches the previous subscription before
    the new one attaches, so a late snapshot of the old conversation is
    dropped instead of delivered.
    """

    def __init__(self, auth: AuthSession, session_factory: SessionFactory, hub: ChangeHub) -> None:
        self._auth = auth
        self._session_factory = session_factory
        self._hub = hub
        self._subscription: Subscription[MessageLog] | None = None
        self._conversation_id: str | None = None

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    def snapshot(self, conversation_id: str) -> MessageLog:
        try:
            with self._session_factory() as db:
                return list_messages(db, chat_id=conversation_id)
        except SQLAlchemyError as exc:
            raise TransientIOError("Failed to load messages") from exc

    def subscribe(
        self,
        conversation_id: str,
        on_change: Callable[[MessageLog], Any],
        *,
        on_error: ErrorCallback | None = None,
    ) -> Subscription[MessageLog]:
        self._auth.require_identity()
        if not conversation_id:
            raise ValidationFailure("A conversation must be selected")
        self.unsubscribe()
        self._conversation_id = conversation_id
        self._subscription = self._hub.subscribe(
            chat_messages_topic(conversation_id),
            lambda: self.snapshot(conversation_id),
            on_change,
            on_error=on_error,
        )
        logger.debug("Message stream attached to %s", conversation_id)
        return self._subscription

    def unsubscribe(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            logger.debug("Message stream detached from %s", self._conversation_id)
        self._subscription = None
        self._conversation_id = None

    close = unsubscribe


__all__ = ["MessageStream", "list_messages", "message_from_row"]
