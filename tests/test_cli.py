"""
tests/test_cli.py -- Tests for the account administration CLI in main.py.

get_settings() is patched so each test writes to its own SQLite file under
tmp_path. stdin is not a terminal under pytest, so the password comes from
UPHOLSTR_PASSWORD.
"""

from __future__ import annotations

import pytest

import main as cli
from auth.models import Role
from auth.store import UserStore
from core.config import Settings


@pytest.fixture
def db_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    settings = Settings(debug=True, database_url=url, bcrypt_rounds=4)
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setenv("UPHOLSTR_PASSWORD", "Secret123")
    return url


def test_create_user_with_role(db_url, capsys):
    assert cli.main(["create-user", "root@example.com", "--name", "Site Admin", "--role", "admin"]) == 0
    assert "Created admin account root@example.com" in capsys.readouterr().out

    store = UserStore(db_url)
    try:
        assert store.get_by_email("root@example.com").role is Role.admin
    finally:
        store.close()


def test_create_user_rejects_duplicate(db_url, capsys):
    cli.main(["create-user", "dup@example.com", "--name", "Dup"])
    assert cli.main(["create-user", "dup@example.com", "--name", "Dup"]) == 1
    assert "Email already registered" in capsys.readouterr().out


def test_create_user_without_password(db_url, monkeypatch, capsys):
    monkeypatch.delenv("UPHOLSTR_PASSWORD")
    assert cli.main(["create-user", "nopw@example.com", "--name", "No Password"]) == 1
    assert "No password provided" in capsys.readouterr().out


def test_history_for_unknown_email(db_url, capsys):
    assert cli.main(["history", "ghost@example.com"]) == 1
    assert "No account" in capsys.readouterr().out


def test_history_lists_attempts(db_url, capsys):
    cli.main(["create-user", "alice@example.com", "--name", "Alice"])
    capsys.readouterr()
    assert cli.main(["history", "alice@example.com"]) == 0
    assert "No login attempts recorded." in capsys.readouterr().out
