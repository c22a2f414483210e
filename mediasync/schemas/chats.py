"""Schemas used by conversations and their message logs."""
from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from .identity import ParticipantProfile


class LastMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    sender_id: str
    at: datetime | None = None


class Conversation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    participant_ids: frozenset[str]
    participant_profiles: List[ParticipantProfile]
    last_message: LastMessage | None = None
    updated_at: datetime | None = None


class ConversationListItem(BaseModel):
    """One row of a user's live conversation list."""

    model_config = ConfigDict(frozen=True)

    conversation: Conversation
    other_party: ParticipantProfile


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    conversation_id: str
    sender_id: str
    text: str
    created_at: datetime


class SendReceipt(BaseModel):
    """Outcome of the two-phase send; the message is durable either way."""

    message: ChatMessage
    summary_updated: bool


class ConversationCreateRequest(BaseModel):
    remote_uid: str = Field(..., min_length=1, max_length=128)


class MessageSendRequest(BaseModel):
    text: str = Field(..., max_length=2000)


__all__ = [
    "LastMessage",
    "Conversation",
    "ConversationListItem",
    "ChatMessage",
    "SendReceipt",
    "ConversationCreateRequest",
    "MessageSendRequest",
]
