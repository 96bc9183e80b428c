"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Only one credential is accepted: the Authorization: Bearer <token> header.
Verification is pure (signature + expiry); no session lookup happens here.

get_principal() turns Err(...) from verify_token() into InvalidToken (401).
get_current_user() additionally loads the account, for endpoints that need
more than id + role.
get_client_info() captures IP and user agent for the audit trail.

Layer rule: no imports from api/ or marketplace/.
  auth/dependencies.py may import from fastapi because it is part of the
  FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.audit import ClientInfo
from auth.errors import InvalidToken
from auth.models import Principal, User
from auth.store import UserStore
from auth.tokens import Err, TokenContext, verify_token

logger = logging.getLogger("upholstr.auth")

_USER_AGENT_MAX = 500


def get_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_principal(request: Request) -> Principal:
    """Require a valid bearer token. Raises InvalidToken (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(principal: Principal = Depends(get_principal)): ...
    """
    ctx: TokenContext = request.app.state.token_context
    result = verify_token(ctx, get_bearer_token(request) or "")
    if isinstance(result, Err):
        logger.debug("Rejected bearer token: %s", result.reason)
        raise InvalidToken()
    return result.principal


def get_current_user(request: Request) -> User:
    """Require a valid token whose subject still exists."""
    principal = get_principal(request)
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(principal.id)
    if user is None:
        raise InvalidToken()
    return user


def get_client_ip(request: Request) -> str:
    """Client address, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("User-Agent", "unknown")[:_USER_AGENT_MAX],
    )
