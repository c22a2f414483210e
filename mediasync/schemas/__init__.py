"""Convenience exports for schema layer."""
from .chats import (
    ChatMessage,
    Conversation,
    ConversationCreateRequest,
    ConversationListItem,
    LastMessage,
    MessageSendRequest,
    SendReceipt,
)
from .identity import DirectoryEntry, Identity, ParticipantProfile, ProfileResponse, ProfileUpsertRequest
from .posts import (
    FeedPost,
    FeedSnapshot,
    LikeResult,
    LikeToggleRequest,
    PostAuthor,
    PostCommentCreate,
    PostCommentResponse,
    PostCreate,
    Trend,
)

__all__ = [
    "ChatMessage",
    "Conversation",
    "ConversationCreateRequest",
    "ConversationListItem",
    "LastMessage",
    "MessageSendRequest",
    "SendReceipt",
    "DirectoryEntry",
    "Identity",
    "ParticipantProfile",
    "ProfileResponse",
    "ProfileUpsertRequest",
    "FeedPost",
    "FeedSnapshot",
    "LikeResult",
    "LikeToggleRequest",
    "PostAuthor",
    "PostCommentCreate",
    "PostCommentResponse",
    "PostCreate",
    "Trend",
]
