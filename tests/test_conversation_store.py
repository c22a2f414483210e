"""Conversation list projection and the two-phase message send."""
from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from mediasync.exceptions import NotFoundError, PermissionDeniedError, ValidationFailure
from mediasync.models import Chat
from mediasync.schemas import ChatMessage, Conversation, ParticipantProfile
from mediasync.services import ConversationStore, MessageStream, SessionKeyResolver, other_party


@pytest.fixture
def store(auth, session_factory, hub, settings) -> ConversationStore:
    return ConversationStore(auth, session_factory, hub, settings=settings)


@pytest.fixture
def open_conversation(auth, session_factory, hub, settings):
    resolver = SessionKeyResolver(auth, session_factory, hub, settings=settings)

    def _open(local, remote):
        return asyncio.run(resolver.resolve(local, remote, []))
    return _open


def test_other_party_projection():
    conversation = Conversation(
        id="c1",
        participant_ids=frozenset({"alice", "bob"}),
        participant_profiles=[
            ParticipantProfile(uid="alice", name="Alice"),
            ParticipantProfile(uid="bob", name="Bob", avatar="https://cdn.example/bob.png"),
        ],
    )

    assert other_party(conversation, "alice").uid == "bob"
    assert other_party(conversation, "bob").name == "Alice"


def test_other_party_falls_back_to_placeholder():
    unnamed = Conversation(
        id="c1",
        participant_ids=frozenset({"alice", "bob"}),
        participant_profiles=[ParticipantProfile(uid="alice", name="Alice"), ParticipantProfile(uid="bob", name="")],
    )
    malformed = Conversation(
        id="c2",
        participant_ids=frozenset({"alice"}),
        participant_profiles=[ParticipantProfile(uid="alice", name="Alice")],
    )

    assert other_party(unnamed, "alice").name == "User"
    assert other_party(malformed, "alice") == ParticipantProfile(uid="", name="User")


def test_snapshot_lists_only_own_conversations_newest_first(store, open_conversation, user_factory):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    carol = user_factory("carol", "Carol")
    with_bob = open_conversation(alice, bob)
    with_carol = open_conversation(alice, carol)

    assert [item.conversation.id for item in store.snapshot("alice")] == [with_carol.id, with_bob.id]
    assert [item.conversation.id for item in store.snapshot("bob")] == [with_bob.id]
    assert store.snapshot("bob")[0].other_party.name == "Alice"

    asyncio.run(store.send_message(with_bob.id, "bob", "hey"))

    assert [item.conversation.id for item in store.snapshot("alice")] == [with_bob.id, with_carol.id]


def test_send_message_updates_summary(auth, store, open_conversation, session_factory, hub, user_factory):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    conversation = open_conversation(alice, bob)

    receipt = asyncio.run(store.send_message(conversation.id, "alice", "hello bob"))

    assert receipt.summary_updated is True
    assert receipt.message.text == "hello bob"
    assert receipt.message.conversation_id == conversation.id
    summary = store.snapshot("bob")[0].conversation.last_message
    assert summary.text == "hello bob"
    assert summary.sender_id == "alice"

    log = MessageStream(auth, session_factory, hub).snapshot(conversation.id)
    assert [message.id for message in log] == [receipt.message.id]


def test_messages_keep_send_order(auth, store, open_conversation, session_factory, hub, user_factory):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    conversation = open_conversation(alice, bob)

    async def exchange() -> None:
        await store.send_message(conversation.id, "alice", "one")
        await store.send_message(conversation.id, "bob", "two")
        await store.send_message(conversation.id, "alice", "three")

    asyncio.run(exchange())

    log = MessageStream(auth, session_factory, hub).snapshot(conversation.id)
    assert [message.text for message in log] == ["one", "two", "three"]
    assert [message.created_at for message in log] == sorted(message.created_at for message in log)


def test_failed_summary_leaves_message_stored_until_reconciled(
    auth, store, open_conversation, session_factory, hub, user_factory, monkeypatch
):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    conversation = open_conversation(alice, bob)

    def _fail(self, db, chat, **_: object) -> None:
        raise OperationalError("UPDATE chats", {}, Exception("database is locked"))

    monkeypatch.setattr(ConversationStore, "_write_summary", _fail)
    receipt = asyncio.run(store.send_message(conversation.id, "alice", "are you there?"))

    assert receipt.summary_updated is False
    assert [message.text for message in MessageStream(auth, session_factory, hub).snapshot(conversation.id)] == [
        "are you there?"
    ]
    assert store.snapshot("alice")[0].conversation.last_message.text == "Chat started"

    monkeypatch.undo()
    assert asyncio.run(store.reconcile_summary(conversation.id)) is True
    assert store.snapshot("alice")[0].conversation.last_message.text == "are you there?"
    assert asyncio.run(store.reconcile_summary(conversation.id)) is False


def test_send_validation_happens_before_any_write(auth, store, open_conversation, session_factory, hub, user_factory):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    conversation = open_conversation(alice, bob)

    with pytest.raises(ValidationFailure):
        asyncio.run(store.send_message(conversation.id, "alice", "   "))
    with pytest.raises(ValidationFailure):
        asyncio.run(store.send_message(conversation.id, "", "hello"))

    assert MessageStream(auth, session_factory, hub).snapshot(conversation.id) == []


def test_send_to_missing_conversation_is_not_found(store, user_factory):
    user_factory("alice", "Alice")

    with pytest.raises(NotFoundError):
        asyncio.run(store.send_message("gone", "alice", "hello"))


def test_outsider_cannot_send(store, open_conversation, user_factory):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    user_factory("mallory", "Mallory")
    conversation = open_conversation(alice, bob)

    with pytest.raises(PermissionDeniedError):
        asyncio.run(store.send_message(conversation.id, "mallory", "let me in"))


def test_live_list_follows_new_conversations_and_messages(
    auth, store, session_factory, hub, settings, user_factory, recorder_factory
):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    resolver = SessionKeyResolver(auth, session_factory, hub, settings=settings)

    async def scenario() -> None:
        recorder = recorder_factory()
        store.subscribe("bob", recorder)
        assert await recorder.next() == []

        conversation = await resolver.resolve(alice, bob, [])
        items = await recorder.next()
        assert [item.conversation.id for item in items] == [conversation.id]
        assert items[0].other_party.uid == "alice"

        await store.send_message(conversation.id, "alice", "ping")
        items = await recorder.next()
        assert items[0].conversation.last_message.text == "ping"

        store.close()
        assert hub.subscriber_count("chats:user:bob") == 0

    asyncio.run(scenario())


def test_subscribe_requires_identity(store):
    with pytest.raises(ValidationFailure):
        store.subscribe("", lambda items: None)


def test_malformed_chat_row_keeps_the_live_list_running(
    auth, store, open_conversation, session_factory, hub, settings, user_factory, recorder_factory
):
    alice = user_factory("alice", "Alice")
    bob = user_factory("bob", "Bob")
    carol = user_factory("carol", "Carol")
    broken = open_conversation(alice, bob)
    with session_factory() as db:
        db.execute(update(Chat).where(Chat.id == broken.id).values(participant_profiles=7))
        db.commit()

    async def scenario() -> None:
        recorder = recorder_factory()
        store.subscribe("alice", recorder, on_error=recorder.error)
        items = await recorder.next()
        assert [item.conversation.id for item in items] == [broken.id]
        assert items[0].other_party == ParticipantProfile(uid="", name="User")

        resolver = SessionKeyResolver(auth, session_factory, hub, settings=settings)
        fresh = await resolver.resolve(alice, carol, [])
        items = await recorder.next()
        assert [item.conversation.id for item in items] == [fresh.id, broken.id]
        assert items[0].other_party.name == "Carol"
        assert recorder.errors == []
        store.close()

    asyncio.run(scenario())


def test_missing_conversation_resyncs_the_senders_list(store, user_factory, recorder_factory):
    user_factory("alice", "Alice")

    async def scenario() -> None:
        recorder = recorder_factory()
        store.subscribe("alice", recorder)
        assert await recorder.next() == []

        with pytest.raises(NotFoundError):
            await store.send_message("gone", "alice", "hello")
        assert await recorder.next() == []
        store.close()

    asyncio.run(scenario())


def test_vanished_conversation_during_summary_resyncs_participants(store, user_factory, recorder_factory):
    user_factory("alice", "Alice")
    message = ChatMessage(
        id=1,
        conversation_id="gone",
        sender_id="alice",
        text="orphan",
        created_at=datetime.now(timezone.utc),
    )

    async def scenario() -> None:
        recorder = recorder_factory()
        store.subscribe("alice", recorder)
        assert await recorder.next() == []

        assert store._update_summary("gone", message, ["alice", "bob"]) is False
        assert await recorder.next() == []
        store.close()

    asyncio.run(scenario())
