"""Find-or-create of the single conversation between two parties."""
from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError

from ..config import Settings, get_settings
from ..database import SessionFactory
from ..exceptions import TransientIOError, ValidationFailure
from ..models import Chat, ChatParticipant, server_timestamp
from ..schemas import Conversation, DirectoryEntry, Identity, ParticipantProfile
from .conversation_store import conversation_from_chat
from .identity_service import AuthSession
from .realtime import ChangeHub, user_chats_topic

logger = logging.getLogger(__name__)

Party = Identity | DirectoryEntry | ParticipantProfile


def as_profile(party: Party) -> ParticipantProfile:
    """Snapshot any identity-like value into the profile stored on a chat."""

    if isinstance(party, ParticipantProfile):
        return party
    if isinstance(party, Identity):
        return ParticipantProfile(uid=party.id, name=party.display_name, avatar=party.avatar_url)
    return ParticipantProfile(uid=party.uid, name=party.display_name, avatar=party.photo_url)


def find_conversation(local_id: str, remote_id: str, existing: Iterable[Conversation]) -> Conversation | None:
    wanted = frozenset((local_id, remote_id))
    for conversation in existing:
        if conversation.participant_ids == wanted:
            return conversation
    return None


class SessionKeyResolver:
    """Locates the canonical conversation for a pair, creating it on first contact.

    Two parties starting a conversation at the same moment, each with a
    snapshot that has none yet, can both create one. That duplicate is left
    in place rather than serialised with a lock.
    """

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

    async def resolve(self, local: Party, remote: Party, existing: Iterable[Conversation]) -> Conversation:
        self._auth.require_identity()
        local_profile = as_profile(local)
        remote_profile = as_profile(remote)
        if not local_profile.uid or not remote_profile.uid:
            raise ValidationFailure("Both participants are required")
        if local_profile.uid == remote_profile.uid:
            raise ValidationFailure("Cannot start a conversation with yourself")

        found = find_conversation(local_profile.uid, remote_profile.uid, existing)
        if found is not None:
            return found
        return self._create(local_profile, remote_profile)

    def _create(self, local: ParticipantProfile, remote: ParticipantProfile) -> Conversation:
        now = server_timestamp()
        chat = Chat(
            participant_profiles=[local.model_dump(), remote.model_dump()],
            last_message_text=self._settings.chat_started_text,
            last_message_sender_id=local.uid,
            last_message_at=now,
            updated_at=now,
        )
        chat.participants = [
            ChatParticipant(user_id=local.uid, position=0),
            ChatParticipant(user_id=remote.uid, position=1),
        ]

        with self._session_factory() as db:
            try:
                db.add(chat)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                raise TransientIOError("Failed to create conversation") from exc
            db.refresh(chat)
            conversation = conversation_from_chat(chat)

        logger.info("Started conversation %s between %s and %s", conversation.id, local.uid, remote.uid)
        self._hub.publish(user_chats_topic(local.uid), user_chats_topic(remote.uid))
        return conversation


__all__ = ["SessionKeyResolver", "as_profile", "find_conversation"]
