"""Shared fixtures for the sync engine tests."""
from __future__ import annotations

import asyncio
import os
from typing import Any, Callable, Iterator

import pytest
from sqlalchemy import delete

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DISABLE_AUTO_MIGRATIONS", "true")

from mediasync.config import Settings  # noqa: E402
from mediasync.database import Base, SessionLocal, engine  # noqa: E402
from mediasync.models import Chat, ChatParticipant, Message, Post, PostComment, PostLike, User  # noqa: E402
from mediasync.schemas import Identity  # noqa: E402
from mediasync.services import AuthSession, ChangeHub  # noqa: E402


class Recorder:
    """Collects pushed snapshots so tests can await them one at a time."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[Any] = asyncio.Queue()
        self.errors: list[Exception] = []

    def __call__(self, snapshot: Any) -> None:
        self.queue.put_nowait(snapshot)

    def error(self, exc: Exception) -> None:
        self.errors.append(exc)

    async def next(self, timeout: float = 1.0) -> Any:
        return await asyncio.wait_for(self.queue.get(), timeout=timeout)

    async def assert_quiet(self, delay: float = 0.05) -> None:
        await asyncio.sleep(delay)
        assert self.queue.empty()


@pytest.fixture(scope="session", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    yield
    with SessionLocal() as session:
        for model in (PostComment, PostLike, Post, Message, ChatParticipant, Chat, User):
            session.execute(delete(model))
        session.commit()


@pytest.fixture
def session_factory():
    return SessionLocal


@pytest.fixture
def auth() -> AuthSession:
    return AuthSession(identity=Identity(id="operator", display_name="Operator"))


@pytest.fixture
def hub() -> ChangeHub:
    return ChangeHub()


@pytest.fixture
def settings() -> Settings:
    return Settings(DATABASE_URL=os.environ["DATABASE_URL"], SEARCH_DEBOUNCE_MS=50)


@pytest.fixture
def recorder_factory() -> Callable[[], Recorder]:
    return Recorder


@pytest.fixture
def user_factory() -> Callable[..., Identity]:
    def _factory(uid: str, display_name: str | None = None, email: str | None = None) -> Identity:
        name = display_name if display_name is not None else uid.title()
        with SessionLocal() as session:
            session.add(User(uid=uid, display_name=name, email=email))
            session.commit()
        return Identity(id=uid, display_name=name, email=email)
    return _factory
