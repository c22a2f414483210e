"""In-process change hub delivering full snapshots to live subscriptions."""
from __future__ import annotations

import asyncio
import inspect
import logging
from functools import lru_cache
from typing import Any, Callable, Generic, TypeVar

from ..config import get_settings
from ..exceptions import SyncError, TransientIOError

logger = logging.getLogger(__name__)

T = TypeVar("T")

SnapshotLoader = Callable[[], T]
SnapshotCallback = Callable[[T], Any]
ErrorCallback = Callable[[SyncError], Any]


def user_chats_topic(user_id: str) -> str:
    return f"chats:user:{user_id}"


def chat_messages_topic(chat_id: str) -> str:
    return f"chats:{chat_id}:messages"


POSTS_TOPIC = "posts"


class Subscription(Generic[T]):
    """A live snapshot channel; calling it (or ``cancel``) unsubscribes.

    Each subscription owns one worker task. Notifications only mark the
    subscription dirty, so a burst of writes coalesces into a single reload and
    deliveries on one subscription never overtake each other.
    """

    def __init__(
        self,
        hub: "ChangeHub",
        topic: str,
        loader: SnapshotLoader[T],
        callback: SnapshotCallback[T],
        *,
        on_error: ErrorCallback | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self.topic = topic
        self._hub = hub
        self._loader = loader
        self._callback = callback
        self._on_error = on_error
        self._poll_interval = poll_interval
        self._dirty = asyncio.Event()
        self._active = True
        self._has_snapshot = False
        self._last_snapshot: T | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return self._active

    @property
    def last_snapshot(self) -> T | None:
        return self._last_snapshot

    def start(self) -> None:
        self._dirty.set()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"subscription:{self.topic}")

    def notify(self) -> None:
        if self._active:
            self._dirty.set()

    def cancel(self) -> None:
        """Detach immediately; nothing is delivered once this returns."""

        if not self._active:
            return
        self._active = False
        self._hub._detach(self)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    __call__ = cancel

    async def _wait_for_change(self) -> bool:
        """Return True when woken by a notification, False on a poll tick."""

        if self._poll_interval is None:
            await self._dirty.wait()
            return True
        try:
            await asyncio.wait_for(self._dirty.wait(), timeout=self._poll_interval)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run(self) -> None:
        while self._active:
            notified = await self._wait_for_change()
            self._dirty.clear()
            if not self._active:
                return
            try:
                snapshot = self._loader()
            except SyncError as exc:
                logger.warning("Snapshot reload failed for %s; keeping last snapshot: %s", self.topic, exc)
                self._report(exc)
                continue
            except Exception as exc:
                logger.exception("Snapshot loader crashed for %s; keeping last snapshot", self.topic)
                error = TransientIOError(f"Failed to load snapshot for {self.topic}")
                error.__cause__ = exc
                self._report(error)
                continue
            if not self._active:
                return
            if not notified and self._has_snapshot and snapshot == self._last_snapshot:
                continue
            self._has_snapshot = True
            self._last_snapshot = snapshot
            await self._deliver(snapshot)

    async def _deliver(self, snapshot: T) -> None:
        try:
            result = self._callback(snapshot)
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Subscriber callback failed for %s", self.topic)

    def _report(self, exc: SyncError) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(exc)
        except Exception:
            logger.exception("Subscriber error callback failed for %s", self.topic)


class ChangeHub:
    """Tracks live subscriptions per topic and wakes them after writes."""

    def __init__(self, *, poll_interval: float | None = None) -> None:
        self._channels: dict[str, set[Subscription[Any]]] = {}
        self._poll_interval = poll_interval

    def subscribe(
        self,
        topic: str,
        loader: SnapshotLoader[T],
        callback: SnapshotCallback[T],
        *,
        on_error: ErrorCallback | None = None,
    ) -> Subscription[T]:
        """Attach a subscription; the first snapshot is delivered asynchronously.

        Must be called from a running event loop.
        """

        subscription: Subscription[T] = Subscription(
            self,
            topic,
            loader,
            callback,
            on_error=on_error,
            poll_interval=self._poll_interval,
        )
        subscription.start()
        self._channels.setdefault(topic, set()).add(subscription)
        return subscription

    def publish(self, *topics: str) -> None:
        for topic in topics:
            for subscription in list(self._channels.get(topic, ())):
                subscription.notify()

    def subscriber_count(self, topic: str) -> int:
        return len(self._channels.get(topic, ()))

    def close(self) -> None:
        for group in list(self._channels.values()):
            for subscription in list(group):
                subscription.cancel()
        self._channels.clear()

    def _detach(self, subscription: Subscription[Any]) -> None:
        group = self._channels.get(subscription.topic)
        if group is None:
            return
        group.discard(subscription)
        if not group:
            self._channels.pop(subscription.topic, None)


@lru_cache()
def get_change_hub() -> ChangeHub:
    """Process-wide hub shared by every gateway connection."""
    return ChangeHub(poll_interval=get_settings().snapshot_poll_seconds)


__all__ = [
    "ChangeHub",
    "Subscription",
    "get_change_hub",
    "user_chats_topic",
    "chat_messages_topic",
    "POSTS_TOPIC",
]
