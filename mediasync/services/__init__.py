"""Convenience exports for service layer."""
from .conversation_store import ConversationStore, conversation_from_chat, load_conversations, other_party
from .directory_search import DirectorySearch, prefix_range, search_directory
from .feed_aggregator import FeedAggregator, compute_trends, extract_hashtags, load_feed
from .identity_service import AuthSession, ensure_profile, get_current_identity, load_identity, sign_in
from .like_toggle import LikeToggle, set_like_state, toggled_membership
from .message_stream import MessageStream, list_messages
from .realtime import ChangeHub, Subscription, get_change_hub
from .session_keys import SessionKeyResolver, as_profile, find_conversation

__all__ = [
    "ConversationStore",
    "conversation_from_chat",
    "load_conversations",
    "other_party",
    "DirectorySearch",
    "prefix_range",
    "search_directory",
    "FeedAggregator",
    "compute_trends",
    "extract_hashtags",
    "load_feed",
    "AuthSession",
    "ensure_profile",
    "get_current_identity",
    "load_identity",
    "sign_in",
    "LikeToggle",
    "set_like_state",
    "toggled_membership",
    "MessageStream",
    "list_messages",
    "ChangeHub",
    "Subscription",
    "get_change_hub",
    "SessionKeyResolver",
    "as_profile",
    "find_conversation",
]
