"""Wires the sync components for one signed-in session."""
from __future__ import annotations

import logging

from .config import Settings, get_settings
from .database import SessionFactory
from .services import (
    AuthSession,
    ChangeHub,
    ConversationStore,
    DirectorySearch,
    FeedAggregator,
    LikeToggle,
    MessageStream,
    SessionKeyResolver,
)

logger = logging.getLogger(__name__)


class SyncEngine:
    """Everything a chat and feed screen needs, sharing one auth session.

    Every component holds the same :class:`AuthSession`, so after
    :meth:`sign_out` their writes fail with ``ValidationFailure``.

    The hub may be shared between engines (one per connected client) so that
    a write made through one engine reaches the subscriptions of the others.
    """

    def __init__(
        self,
        auth: AuthSession,
        session_factory: SessionFactory,
        *,
        hub: ChangeHub | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.auth = auth
        self.settings = settings or get_settings()
        self.hub = hub or ChangeHub(poll_interval=self.settings.snapshot_poll_seconds)
        self.resolver = SessionKeyResolver(auth, session_factory, self.hub, settings=self.settings)
        self.conversations = ConversationStore(auth, session_factory, self.hub, settings=self.settings)
        self.messages = MessageStream(auth, session_factory, self.hub)
        self.directory = DirectorySearch(auth, session_factory, self.resolver, settings=self.settings)
        self.likes = LikeToggle(auth, session_factory, self.hub)
        self.feed = FeedAggregator(auth, session_factory, self.hub, settings=self.settings, like_toggle=self.likes)

    def close(self) -> None:
        """Cancel every subscription and timer this engine started."""

        self.directory.close()
        self.messages.unsubscribe()
        self.conversations.close()
        self.feed.close()

    def sign_out(self) -> None:
        self.close()
        self.auth.sign_out()
        logger.info("Sync engine torn down after sign-out")


__all__ = ["SyncEngine"]
