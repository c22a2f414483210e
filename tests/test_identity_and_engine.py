"""Sign-in profile documents and the per-session engine lifecycle."""
from __future__ import annotations

import asyncio

import pytest

from mediasync.engine import SyncEngine
from mediasync.exceptions import ValidationFailure
from mediasync.models import User
from mediasync.schemas import Identity
from mediasync.services import AuthSession, load_identity, sign_in
from mediasync.services.migrations import should_run_migrations
from mediasync.services.realtime import POSTS_TOPIC, user_chats_topic


def test_sign_in_creates_profile_only_once(auth, session_factory):
    first = Identity(id="g-123", display_name="Grace", email="grace@example.com", avatar_url="https://cdn.example/g.png")
    auth = sign_in(session_factory, first, provider="google")

    assert auth.signed_in
    assert auth.require_identity() == first

    renamed = Identity(id="g-123", display_name="Grace H.")
    sign_in(session_factory, renamed, provider="google")

    with session_factory() as db:
        user = db.get(User, "g-123")
        assert user.display_name == "Grace"
        assert user.provider == "google"
        assert load_identity(db, "g-123").avatar_url == "https://cdn.example/g.png"
        assert load_identity(db, "nobody") is None


def test_signed_out_session_rejects_identity_access():
    auth = AuthSession()
    assert not auth.signed_in
    with pytest.raises(ValidationFailure):
        auth.require_identity()


def test_sign_out_cancels_every_subscription(session_factory, hub, settings, user_factory, recorder_factory):
    me = user_factory("me", "Me")
    engine = SyncEngine(AuthSession(identity=me), session_factory, hub=hub, settings=settings)

    async def scenario() -> None:
        conversations = recorder_factory()
        feed = recorder_factory()
        engine.conversations.subscribe("me", conversations)
        engine.feed.subscribe(feed)
        await conversations.next()
        await feed.next()
        engine.directory.update_query("zz")

        engine.sign_out()

        assert hub.subscriber_count(user_chats_topic("me")) == 0
        assert hub.subscriber_count(POSTS_TOPIC) == 0
        assert not engine.directory.pending
        hub.publish(POSTS_TOPIC)
        await feed.assert_quiet()

    asyncio.run(scenario())

    assert not engine.auth.signed_in
    with pytest.raises(ValidationFailure):
        asyncio.run(engine.feed.publish(me, "still here?"))
    with pytest.raises(ValidationFailure):
        engine.messages.subscribe("any", lambda log: None)


def test_engine_wires_a_full_round_trip(session_factory, hub, settings, user_factory):
    me = user_factory("me", "Me")
    user_factory("ali", "Ali")
    engine = SyncEngine(AuthSession(identity=me), session_factory, hub=hub, settings=settings)

    async def scenario():
        engine.directory.update_query("Al")
        await engine.directory.wait_idle()
        conversation = await engine.directory.select(engine.directory.results[0], [])
        receipt = await engine.conversations.send_message(conversation.id, "me", "hi ali")
        return conversation, receipt

    conversation, receipt = asyncio.run(scenario())

    assert receipt.summary_updated
    assert engine.conversations.snapshot("ali")[0].conversation.id == conversation.id
    assert [message.text for message in engine.messages.snapshot(conversation.id)] == ["hi ali"]


def test_migrations_skip_sqlite_and_honour_opt_out(monkeypatch):
    monkeypatch.delenv("PYTEST_CURRENT_TEST", raising=False)
    monkeypatch.delenv("DISABLE_AUTO_MIGRATIONS", raising=False)

    assert should_run_migrations("sqlite+pysqlite:///:memory:") is False
    assert should_run_migrations("postgresql+psycopg://sync@db/mediasync") is True

    monkeypatch.setenv("DISABLE_AUTO_MIGRATIONS", "yes")
    assert should_run_migrations("postgresql+psycopg://sync@db/mediasync") is False
