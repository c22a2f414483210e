"""Debounced prefix search over user profiles, feeding conversation creation."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import SessionFactory
from ..exceptions import TransientIOError
from ..models import User
from ..schemas import Conversation, DirectoryEntry
from .identity_service import AuthSession
from .realtime import ErrorCallback
from .session_keys import SessionKeyResolver

logger = logging.getLogger(__name__)

# Sorts after every character a display name realistically contains.
HIGH_SENTINEL = "\uf8ff"


def prefix_range(prefix: str) -> tuple[str, str]:
    """Half-open ``[lower, upper)`` bounds matching names that start with ``prefix``."""

    return prefix, prefix + HIGH_SENTINEL


def search_directory(db: Session, prefix: str, *, exclude_id: str | None, limit: int) -> list[DirectoryEntry]:
    lower, upper = prefix_range(prefix)
    stmt = select(User).where(User.display_name >= lower, User.display_name < upper)
    if exclude_id:
        stmt = stmt.where(User.uid != exclude_id)
    stmt = stmt.order_by(User.display_name.asc(), User.uid.asc()).limit(limit)
    return [DirectoryEntry.model_validate(user) for user in db.scalars(stmt)]


class DirectorySearch:
    """Keystroke-driven user lookup.

    ``update_query`` coalesces input: each call cancels the pending lookup and
    schedules a new one after the quiescence window, so only the last value
    typed within the window reaches the store.
    """

    def __init__(
        self,
        auth: AuthSession,
        session_factory: SessionFactory,
        resolver: SessionKeyResolver,
        *,
        settings: Settings | None = None,
        on_results: Callable[[list[DirectoryEntry]], Any] | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._auth = auth
        self._session_factory = session_factory
        self._resolver = resolver
        self._settings = settings or get_settings()
        self._on_results = on_results
        self._on_error = on_error
        self._query = ""
        self._results: list[DirectoryEntry] = []
        self._pending: asyncio.Task[None] | None = None

    @property
    def query(self) -> str:
        return self._query

    @property
    def results(self) -> list[DirectoryEntry]:
        return list(self._results)

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def search(self, prefix: str, exclude_id: str | None = None) -> list[DirectoryEntry]:
        """Run one lookup immediately; blank prefixes never reach the store."""

        if not prefix or not prefix.strip():
            return []
        try:
            with self._session_factory() as db:
                return search_directory(
                    db,
                    prefix,
                    exclude_id=exclude_id,
                    limit=self._settings.search_result_limit,
                )
        except SQLAlchemyError as exc:
            raise TransientIOError("Directory search failed") from exc

    def update_query(self, text: str) -> None:
        self._query = text
        self._cancel_pending()
        if not text.strip():
            self._publish_results([])
            return
        self._pending = asyncio.get_running_loop().create_task(self._run_debounced(text))

    async def wait_idle(self) -> None:
        """Wait for the scheduled lookup, if any, to finish or be cancelled."""

        if self._pending is not None:
            await asyncio.gather(self._pending, return_exceptions=True)

    async def select(self, entry: DirectoryEntry, existing: Iterable[Conversation]) -> Conversation:
        """Open the conversation with ``entry`` and reset the search box."""

        identity = self._auth.require_identity()
        conversation = await self._resolver.resolve(identity, entry, existing)
        self.clear()
        return conversation

    def clear(self) -> None:
        self._cancel_pending()
        self._query = ""
        self._publish_results([])

    def close(self) -> None:
        self._cancel_pending()

    async def _run_debounced(self, text: str) -> None:
        await asyncio.sleep(self._settings.search_debounce_seconds)
        identity = self._auth.identity
        try:
            results = await self.search(text, identity.id if identity else None)
        except TransientIOError as exc:
            logger.warning("Directory search for %r failed: %s", text, exc)
            if self._on_error is not None:
                try:
                    self._on_error(exc)
                except Exception:
                    logger.exception("Directory search error callback failed")
            return
        if text != self._query:
            return
        self._publish_results(results)

    def _publish_results(self, results: list[DirectoryEntry]) -> None:
        self._results = results
        if self._on_results is not None:
            self._on_results(list(results))

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None


__all__ = ["DirectorySearch", "HIGH_SENTINEL", "prefix_range", "search_directory"]
