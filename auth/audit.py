"""
auth/audit.py -- Login audit trail and session bookkeeping.

Both writes happen after the authentication decision is final. They are
best-effort follow-ups: a failed audit or session insert is logged with its
traceback and swallowed, so it can never turn an accepted login into an
error response.

record_session() itself raises on failure; record_session_safely() is the
swallowing wrapper used by the login flow. record_attempt() always swallows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from auth.models import LoginHistoryEntry, Session
from auth.store import UserStore
from auth.tokens import IssuedToken, TokenContext, digest_token

logger = logging.getLogger("upholstr.auth")

FAILURE_WRONG_PASSWORD = "wrong_password"
FAILURE_UNKNOWN_EMAIL = "unknown_email"


@dataclass(frozen=True)
class ClientInfo:
    """Where an authentication request came from."""

    ip_address: str = "unknown"
    user_agent: str = "unknown"


def record_attempt(
    store: UserStore,
    user_id: str | None,
    success: bool,
    client: ClientInfo,
    failure_reason: str | None = None,
) -> LoginHistoryEntry | None:
    """Append one login history row. Returns None if the write failed."""
    entry = LoginHistoryEntry(
        user_id=user_id,
        successful=success,
        failure_reason=failure_reason,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )
    try:
        return store.create_login_entry(entry)
    except Exception:
        logger.exception("Failed to write login history (user_id=%s success=%s)", user_id, success)
        return None


def record_session(
    store: UserStore,
    ctx: TokenContext,
    user_id: str,
    issued: IssuedToken,
    client: ClientInfo,
) -> Session:
    """Persist a session row for a freshly issued token.

    created_at and expires_at come from the token itself, so the row always
    satisfies expires_at == created_at + ctx.ttl_seconds.
    """
    session = Session(
        user_id=user_id,
        token_digest=digest_token(ctx, issued.token),
        created_at=_iso(issued.issued_at),
        expires_at=_iso(issued.expires_at),
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )
    return store.create_session(session)


def record_session_safely(
    store: UserStore,
    ctx: TokenContext,
    user_id: str,
    issued: IssuedToken,
    client: ClientInfo,
) -> Session | None:
    try:
        return record_session(store, ctx, user_id, issued, client)
    except Exception:
        logger.exception("Failed to record session for user_id=%s", user_id)
        return None


def _iso(value: datetime) -> str:
    return value.isoformat()
