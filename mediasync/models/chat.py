"""SQLAlchemy ORM models for one-to-one conversations."""
from __future__ import annotations

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from mediasync.database import Base
from .base import new_document_id, server_timestamp


class Chat(Base):
    __tablename__ = "chats"

    id = Column(String(64), primary_key=True, default=new_document_id)
    # [{"uid": ..., "name": ..., "avatar": ...}, ...] in participant order
    participant_profiles = Column(JSON, nullable=False, default=list)
    last_message_text = Column(Text, nullable=True)
    last_message_sender_id = Column(String(128), nullable=True)
    last_message_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=server_timestamp, nullable=False, index=True)

    participants = relationship(
        "ChatParticipant",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatParticipant.position",
        lazy="selectin",
    )
    messages = relationship("Message", back_populates="chat", cascade="all, delete-orphan")


class ChatParticipant(Base):
    __tablename__ = "chat_participants"

    chat_id = Column(String(64), ForeignKey("chats.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(128), primary_key=True, index=True)
    position = Column(Integer, nullable=False, default=0)

    chat = relationship("Chat", back_populates="participants")


__all__ = ["Chat", "ChatParticipant"]
