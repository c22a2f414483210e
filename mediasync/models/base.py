"""Store-assigned identifiers and timestamps shared across ORM models."""
from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone

_clock_lock = threading.Lock()
_last_issued: datetime | None = None


def server_timestamp() -> datetime:
    """Return a UTC timestamp strictly later than any previously issued one."""

    global _last_issued
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_issued is not None and now <= _last_issued:
            now = _last_issued + timedelta(microseconds=1)
        _last_issued = now
        return now


def new_document_id() -> str:
    return uuid.uuid4().hex


__all__ = ["server_timestamp", "new_document_id"]
