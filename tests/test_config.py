"""
tests/test_config.py -- Tests for the SECRET_KEY policy and defaults in core/config.py.

conftest.py sets DEBUG=true in the environment, so production-mode cases pass
debug=False explicitly.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

LONG_KEY = "k" * 32


def test_debug_mode_generates_secret_key():
    settings = Settings(debug=True, secret_key="")
    assert len(settings.secret_key) >= 32


def test_production_requires_secret_key():
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(debug=False, secret_key="")


def test_short_secret_key_is_rejected():
    with pytest.raises(ValidationError, match="at least 32 characters"):
        Settings(debug=False, secret_key="too-short")


def test_defaults():
    settings = Settings(debug=False, secret_key=LONG_KEY)
    assert settings.session_ttl_seconds == 86400
    assert settings.bcrypt_rounds >= 4
    assert settings.database_url.startswith("sqlite:///")


def test_ttl_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(debug=False, secret_key=LONG_KEY, session_ttl_seconds=0)


def test_bcrypt_rounds_bounds():
    with pytest.raises(ValidationError):
        Settings(debug=False, secret_key=LONG_KEY, bcrypt_rounds=3)
    with pytest.raises(ValidationError):
        Settings(debug=False, secret_key=LONG_KEY, bcrypt_rounds=17)
