"""Convenience exports for ORM models."""
from .base import new_document_id, server_timestamp
from .chat import Chat, ChatParticipant
from .message import Message
from .post import Post, PostComment, PostLike
from .user import User

__all__ = [
    "Chat",
    "ChatParticipant",
    "Message",
    "Post",
    "PostComment",
    "PostLike",
    "User",
    "new_document_id",
    "server_timestamp",
]
