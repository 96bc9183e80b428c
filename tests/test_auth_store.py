"""
tests/test_auth_store.py -- Unit tests for UserStore (auth/store.py).

Each test gets a private in-memory database from the user_store fixture.
"""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine

from auth.errors import DuplicateIdentity, StoreUnavailable
from auth.models import Credentials, LoginHistoryEntry, Role, Session, User
from auth.store import UserStore


def _add_user(store: UserStore, email: str = "alice@example.com", role: Role = Role.client) -> User:
    user = User(id="", email=email, full_name="Alice", role=role)
    return store.create_user(user, Credentials(user_id="", password_hash="$2b$04$hash", password_salt="$2b$04$salt"))


def _session(user_id: str, created_at: str) -> Session:
    return Session(
        user_id=user_id,
        token_digest="d" * 64,
        created_at=created_at,
        expires_at="2099-01-01T00:00:00+00:00",
        ip_address="127.0.0.1",
        user_agent="pytest",
    )


class TestUsers:
    def test_create_assigns_id_and_timestamps(self, user_store: UserStore) -> None:
        user = _add_user(user_store)
        assert user.id
        assert user.created_at
        assert user.created_at == user.updated_at
        assert user.email_confirmed is False

    def test_lookup_by_id_and_email(self, user_store: UserStore) -> None:
        user = _add_user(user_store)
        assert user_store.get_by_id(user.id).email == "alice@example.com"
        assert user_store.get_by_email("alice@example.com").id == user.id
        assert user_store.get_by_email("nobody@example.com") is None

    def test_email_lookup_is_case_sensitive(self, user_store: UserStore) -> None:
        _add_user(user_store)
        assert user_store.get_by_email("Alice@example.com") is None

    def test_duplicate_email_raises(self, user_store: UserStore) -> None:
        _add_user(user_store)
        with pytest.raises(DuplicateIdentity):
            _add_user(user_store)

    def test_returned_user_has_no_password_material(self, user_store: UserStore) -> None:
        user = user_store.get_by_id(_add_user(user_store).id)
        assert not hasattr(user, "password_hash")
        assert not hasattr(user, "password_salt")

    def test_credentials_come_back_separately(self, user_store: UserStore) -> None:
        _add_user(user_store)
        user, credentials = user_store.get_credentials_by_email("alice@example.com")
        assert credentials.user_id == user.id
        assert credentials.password_hash == "$2b$04$hash"

    def test_role_is_preserved(self, user_store: UserStore) -> None:
        user = _add_user(user_store, "shop@example.com", Role.upholsterer)
        assert user_store.get_by_id(user.id).role is Role.upholsterer

    def test_touch_last_login(self, user_store: UserStore) -> None:
        user = _add_user(user_store)
        assert user_store.get_by_id(user.id).last_login_date is None
        assert user_store.touch_last_login(user.id) is True
        assert user_store.get_by_id(user.id).last_login_date is not None
        assert user_store.touch_last_login("missing") is False

    def test_delete_user_removes_sessions_and_history(self, user_store: UserStore) -> None:
        user = _add_user(user_store)
        user_store.create_session(_session(user.id, "2024-01-01T00:00:00+00:00"))
        user_store.create_login_entry(
            LoginHistoryEntry(user_id=user.id, successful=True, ip_address="1.2.3.4", user_agent="pytest")
        )
        assert user_store.delete_user(user.id) is True
        assert user_store.get_by_id(user.id) is None
        assert user_store.list_sessions(user.id) == []
        assert user_store.list_login_history(user.id) == []


class TestSessionsAndHistory:
    def test_sessions_listed_newest_first(self, user_store: UserStore) -> None:
        user = _add_user(user_store)
        user_store.create_session(_session(user.id, "2024-01-01T00:00:00+00:00"))
        user_store.create_session(_session(user.id, "2024-06-01T00:00:00+00:00"))
        sessions = user_store.list_sessions(user.id)
        assert [s.created_at for s in sessions] == ["2024-06-01T00:00:00+00:00", "2024-01-01T00:00:00+00:00"]

    def test_unknown_email_attempts_have_no_user(self, user_store: UserStore) -> None:
        user_store.create_login_entry(
            LoginHistoryEntry(
                user_id=None,
                successful=False,
                ip_address="1.2.3.4",
                user_agent="pytest",
                failure_reason="unknown_email",
            )
        )
        entries = user_store.list_login_history(None)
        assert len(entries) == 1
        assert entries[0].user_id is None
        assert entries[0].successful is False
        assert entries[0].login_date

    def test_history_limit(self, user_store: UserStore) -> None:
        user = _add_user(user_store)
        for _ in range(5):
            user_store.create_login_entry(
                LoginHistoryEntry(user_id=user.id, successful=True, ip_address="1.2.3.4", user_agent="pytest")
            )
        assert len(user_store.list_login_history(user.id, limit=3)) == 3


class TestUnavailable:
    def test_unreachable_database_raises_store_unavailable(self, user_store: UserStore) -> None:
        user_store.engine = create_engine("sqlite:////nonexistent-dir/upholstr/auth.db")
        with pytest.raises(StoreUnavailable):
            user_store.get_by_email("alice@example.com")
        assert user_store.ping() is False
