"""Live conversation list and the two-phase message send."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import SessionFactory
from ..exceptions import NotFoundError, PermissionDeniedError, TransientIOError, ValidationFailure
from ..models import Chat, ChatParticipant, Message, server_timestamp
from ..schemas import ChatMessage, Conversation, ConversationListItem, LastMessage, ParticipantProfile, SendReceipt
from .identity_service import AuthSession
from .message_stream import message_from_row
from .realtime import ChangeHub, ErrorCallback, Subscription, chat_messages_topic, user_chats_topic

logger = logging.getLogger(__name__)

ConversationList = list[ConversationListItem]


def _profile_or_none(raw: Any) -> ParticipantProfile | None:
    if not isinstance(raw, dict):
        return None
    uid = raw.get("uid")
    if not uid:
        return None
    avatar = raw.get("avatar")
    return ParticipantProfile(uid=str(uid), name=str(raw.get("name") or ""), avatar=avatar if isinstance(avatar, str) else None)


def conversation_from_chat(chat: Chat) -> Conversation:
    raw_profiles = chat.participant_profiles if isinstance(chat.participant_profiles, list) else []
    profiles = [profile for profile in map(_profile_or_none, raw_profiles) if profile is not None]
    last_message: LastMessage | None = None
    if chat.last_message_text is not None:
        last_message = LastMessage(
            text=str(chat.last_message_text),
            sender_id=str(chat.last_message_sender_id or ""),
            at=chat.last_message_at,
        )
    return Conversation(
        id=str(chat.id),
        participant_ids=frozenset(str(participant.user_id) for participant in chat.participants),
        participant_profiles=profiles,
        last_message=last_message,
        updated_at=chat.updated_at,
    )


def other_party(conversation: Conversation, user_id: str, *, placeholder_name: str = "User") -> ParticipantProfile:
    """The participant profile that is not ``user_id``, or a placeholder for malformed chats."""

    for profile in conversation.participant_profiles:
        if profile.uid != user_id:
            if not profile.name:
                return profile.model_copy(update={"name": placeholder_name})
            return profile
    return ParticipantProfile(uid="", name=placeholder_name)


def load_conversations(db: Session, user_id: str) -> list[Conversation]:
    """Return chats ``user_id`` takes part in, most recently updated first."""

    stmt = (
        select(Chat)
        .join(ChatParticipant, ChatParticipant.chat_id == Chat.id)
        .where(ChatParticipant.user_id == user_id)
        .order_by(Chat.updated_at.desc(), Chat.id.asc())
    )
    return [conversation_from_chat(chat) for chat in db.scalars(stmt)]


class ConversationStore:
    """Keeps a user's conversation list live and writes new messages."""

    def __init__(
        self,
        auth: AuthSession,
        session_factory: SessionFactory,
        hub: ChangeHub,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._auth = auth
        self._session_factory = session_factory
        self._hub = hub
        self._settings = settings or get_settings()
        self._subscriptions: list[Subscription[ConversationList]] = []

    def snapshot(self, user_id: str) -> ConversationList:
        try:
            with self._session_factory() as db:
                conversations = load_conversations(db, user_id)
        except SQLAlchemyError as exc:
            raise TransientIOError("Failed to load conversations") from exc
        placeholder = self._settings.placeholder_display_name
        return [
            ConversationListItem(
                conversation=conversation,
                other_party=other_party(conversation, user_id, placeholder_name=placeholder),
            )
            for conversation in conversations
        ]

    def subscribe(
        self,
        user_id: str,
        on_change: Callable[[ConversationList], Any],
        *,
        on_error: ErrorCallback | None = None,
    ) -> Subscription[ConversationList]:
        self._auth.require_identity()
        if not user_id:
            raise ValidationFailure("A user id is required")
        subscription = self._hub.subscribe(
            user_chats_topic(user_id),
            lambda: self.snapshot(user_id),
            on_change,
            on_error=on_error,
        )
        self._subscriptions = [item for item in self._subscriptions if item.active]
        self._subscriptions.append(subscription)
        return subscription

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    async def send_message(self, conversation_id: str, sender_id: str, text: str) -> SendReceipt:
        """Append the message, then refresh the conversation summary.

        The two writes are separate transactions. When the summary update
        fails the message stays stored and the receipt reports
        ``summary_updated=False`` until :meth:`reconcile_summary` runs.
        """

        self._auth.require_identity()
        if not sender_id:
            raise ValidationFailure("Sign in required")
        if not (text or "").strip():
            raise ValidationFailure("Message text is required")

        with self._session_factory() as db:
            chat = self._get_chat_for_participant(db, conversation_id, sender_id)
            participant_ids = [str(participant.user_id) for participant in chat.participants]
            message = Message(chat_id=chat.id, sender_id=sender_id, text=text, created_at=server_timestamp())
            try:
                db.add(message)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise TransientIOError("Failed to persist message") from exc
            db.refresh(message)
            sent = message_from_row(message)

        self._hub.publish(chat_messages_topic(conversation_id))

        summary_updated = self._update_summary(conversation_id, sent, participant_ids)
        if summary_updated:
            self._hub.publish(*(user_chats_topic(uid) for uid in participant_ids))
        return SendReceipt(message=sent, summary_updated=summary_updated)

    async def reconcile_summary(self, conversation_id: str) -> bool:
        """Point the summary at the newest stored message; True when it changed."""

        self._auth.require_identity()
        with self._session_factory() as db:
            chat = db.get(Chat, conversation_id)
            if chat is None:
                raise NotFoundError("Conversation not found")
            latest = db.scalars(
                select(Message)
                .where(Message.chat_id == conversation_id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(1)
            ).first()
            if latest is None:
                return False
            if (
                chat.last_message_text == latest.text
                and chat.last_message_sender_id == latest.sender_id
                and chat.last_message_at == latest.created_at
            ):
                return False
            participant_ids = [str(participant.user_id) for participant in chat.participants]
            try:
                self._write_summary(db, chat, text=latest.text, sender_id=latest.sender_id, at=latest.created_at)
            except SQLAlchemyError as exc:
                raise TransientIOError("Failed to update conversation summary") from exc

        logger.info("Reconciled summary for conversation %s", conversation_id)
        self._hub.publish(*(user_chats_topic(uid) for uid in participant_ids))
        return True

    def _get_chat_for_participant(self, db: Session, conversation_id: str, user_id: str) -> Chat:
        chat = db.get(Chat, conversation_id)
        if chat is None:
            # The caller's list still shows this chat; make it re-sync.
            self._hub.publish(user_chats_topic(user_id))
            raise NotFoundError("Conversation not found")
        if user_id not in {participant.user_id for participant in chat.participants}:
            raise PermissionDeniedError("Not a participant of this conversation")
        return chat

    def _update_summary(self, conversation_id: str, message: ChatMessage, participant_ids: list[str]) -> bool:
        try:
            with self._session_factory() as db:
                chat = db.get(Chat, conversation_id)
                if chat is None:
                    logger.warning("Conversation %s vanished before its summary was updated", conversation_id)
                    self._hub.publish(*(user_chats_topic(uid) for uid in participant_ids))
                    return False
                self._write_summary(db, chat, text=message.text, sender_id=message.sender_id, at=message.created_at)
        except SQLAlchemyError:
            logger.warning(
                "Message %s stored but summary of conversation %s is stale",
                message.id,
                conversation_id,
                exc_info=True,
            )
            return False
        return True

    def _write_summary(self, db: Session, chat: Chat, *, text: str, sender_id: str, at: datetime) -> None:
        chat.last_message_text = text
        chat.last_message_sender_id = sender_id
        chat.last_message_at = at
        chat.updated_at = server_timestamp()
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            raise


__all__ = [
    "ConversationStore",
    "conversation_from_chat",
    "load_conversations",
    "other_party",
]
