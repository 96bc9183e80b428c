"""
auth/tokens.py -- Bearer token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (user id), role, iat, exp and
       a random jti so two tokens issued in the same second still differ.
       Only sub and role are read back; no other claim is trusted.

  TokenContext: an immutable value holding the signing secret, algorithm and
       TTL. It is built once at startup from Settings and passed explicitly
       to issue_token() / verify_token(). Nothing in this module reads
       configuration on its own.

  Verification result: verify_token() returns Ok(principal) or Err(reason)
       and never raises. Callers branch on the result; the 401 is produced
       at the dependency layer (auth/dependencies.py).

  Session digests: the session table stores HMAC-SHA256(secret, token), not
       the token itself, so a leaked table cannot be replayed.

Layer rule: no imports from api/ or marketplace/.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Union

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import Principal, Role

if TYPE_CHECKING:
    from core.config import Settings

_ALGORITHM = "HS256"


@dataclass(frozen=True)
class TokenContext:
    secret_key: str
    ttl_seconds: int
    algorithm: str = _ALGORITHM

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenContext:
        return cls(secret_key=settings.secret_key, ttl_seconds=settings.session_ttl_seconds)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class Ok:
    principal: Principal


@dataclass(frozen=True)
class Err:
    reason: str


TokenResult = Union[Ok, Err]


def issue_token(ctx: TokenContext, principal: Principal, now: datetime | None = None) -> IssuedToken:
    """Sign a token for the principal that expires ctx.ttl_seconds after now."""
    issued_at = now or datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(seconds=ctx.ttl_seconds)
    payload = {
        "sub": principal.id,
        "role": principal.role.value,
        "iat": issued_at,
        "exp": expires_at,
        "jti": secrets.token_urlsafe(16),
    }
    token = jwt.encode(payload, ctx.secret_key, algorithm=ctx.algorithm)
    return IssuedToken(token=token, issued_at=issued_at, expires_at=expires_at)


def verify_token(ctx: TokenContext, token: str) -> TokenResult:
    """Check signature and expiry and recover the principal.

    Expiry is enforced here on every call, not only at issuance.
    """
    if not token:
        return Err("missing token")
    try:
        payload = jwt.decode(token, ctx.secret_key, algorithms=[ctx.algorithm])
    except ExpiredSignatureError:
        return Err("token expired")
    except JWTError:
        return Err("invalid token")

    subject = payload.get("sub")
    raw_role = payload.get("role")
    if not isinstance(subject, str) or not subject or raw_role is None:
        return Err("missing claims")
    try:
        role = Role(raw_role)
    except ValueError:
        return Err("unknown role")
    return Ok(Principal(id=subject, role=role))


def digest_token(ctx: TokenContext, token: str) -> str:
    """Return HMAC-SHA256(secret, token) as hex for storage in the session table."""
    return hmac.new(ctx.secret_key.encode(), token.encode(), hashlib.sha256).hexdigest()
