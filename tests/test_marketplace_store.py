"""
tests/test_marketplace_store.py -- Unit tests for MarketplaceStore (marketplace/store.py).

Each test gets a private in-memory database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine

from auth.errors import StoreUnavailable
from marketplace.models import Conversation, Message
from marketplace.store import MarketplaceStore


@pytest.fixture
def store():
    market = MarketplaceStore("sqlite:///:memory:")
    yield market
    market.close()


def _conversation_with_messages(store: MarketplaceStore, *contents: str) -> tuple[str, list[Message]]:
    conversation = store.create_conversation(Conversation(user_id="alice", user_name="Alice"))
    sent = [store.add_message(Message(conversation_id=conversation.id, content=c)) for c in contents]
    return conversation.id, sent


def test_timestamps_have_fixed_precision(store):
    _conv_id, (message,) = _conversation_with_messages(store, "hello")
    parsed = datetime.fromisoformat(message.created_at)
    assert parsed.utcoffset() == timedelta(0)
    assert len(message.created_at) == len("2024-01-01T00:00:00.000000+00:00")


def test_after_bound_is_exclusive(store):
    conv_id, sent = _conversation_with_messages(store, "one", "two", "three")
    messages, total = store.list_messages(conv_id, after=datetime.fromisoformat(sent[0].created_at))
    assert [m.content for m in messages] == ["two", "three"]
    assert total == 2


def test_before_bound_with_offset_and_naive_datetimes(store):
    conv_id, sent = _conversation_with_messages(store, "one", "two")
    second = datetime.fromisoformat(sent[1].created_at)

    shifted = second.astimezone(timezone(timedelta(hours=-7)))
    messages, _ = store.list_messages(conv_id, before=shifted)
    assert [m.content for m in messages] == ["one"]

    naive_utc = second.replace(tzinfo=None)
    messages, _ = store.list_messages(conv_id, before=naive_utc)
    assert [m.content for m in messages] == ["one"]


def test_unreachable_database_raises_store_unavailable(store):
    store.engine = create_engine("sqlite:////nonexistent-dir/upholstr/marketplace.db")
    with pytest.raises(StoreUnavailable):
        store.get_product("anything")
    assert store.ping() is False


def test_ping_answers(store):
    assert store.ping() is True
