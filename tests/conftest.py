"""
tests/conftest.py -- Shared test fixtures for Upholstr.

This module provides:
  - user_store / token_context / service: isolated unit-test objects on a
    private in-memory database
  - _make_test_stores(): named shared-memory DBs for the API tests
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: (TestClient, UserStore) for API integration tests

Design: named shared-memory SQLite URIs (not plain :memory:) are required for
the API tests because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

DEBUG must be set before any api/core import so get_settings() auto-generates
SECRET_KEY instead of raising. BCRYPT_ROUNDS=4 keeps hashing fast.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# Set before any api/core import so get_settings() sees them.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.credentials import CredentialService
from auth.store import UserStore
from auth.tokens import TokenContext
from marketplace.store import MarketplaceStore

TEST_SECRET = "test-secret-key-that-is-at-least-32-characters-long"
TEST_ROUNDS = 4


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def token_context() -> TokenContext:
    return TokenContext(secret_key=TEST_SECRET, ttl_seconds=3600)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def service(user_store: UserStore, token_context: TokenContext) -> CredentialService:
    return CredentialService(user_store, token_context, bcrypt_rounds=TEST_ROUNDS)


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, MarketplaceStore]:
    """Create isolated named shared-memory SQLite stores.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    market_url = f"sqlite:///file:test_market_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), MarketplaceStore(db_url=market_url)


def _patch_lifespan(user_store: UserStore, marketplace: MarketplaceStore, ctx: TokenContext):
    """Return a lifespan that installs the given stores instead of the real ones."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.token_context = ctx
        app.state.user_store = user_store
        app.state.marketplace = marketplace
        app.state.credentials = CredentialService(user_store, ctx, bcrypt_rounds=TEST_ROUNDS)
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, UserStore], None, None]:
    """Yield (client, user_store) backed by per-module in-memory databases."""
    suffix = request.module.__name__.replace(".", "_")
    user_store, marketplace = _make_test_stores(suffix)
    ctx = TokenContext(secret_key=TEST_SECRET, ttl_seconds=3600)

    app.router.lifespan_context = _patch_lifespan(user_store, marketplace, ctx)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, user_store

    user_store.close()
    marketplace.close()

