"""
auth/credentials.py -- Registration, authentication and login orchestration.

The flows are two-phase:

  1. Decide. Look up the account, check the password, create the user. This
     is the only phase whose failure reaches the caller.
  2. Follow up. Stamp last_login_date, record the session, append the audit
     row. Each write is independent and best-effort (see auth/audit.py).

Enumeration safety: authenticate() raises the same InvalidCredentials for an
unknown email and a wrong password. An unknown email still pays for one
bcrypt verification against a dummy hash so both paths cost the same work.

bcrypt is CPU-bound. Callers in async code should run these methods in a
worker thread; the FastAPI routes are plain `def` handlers for that reason.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass

from auth.audit import (
    FAILURE_UNKNOWN_EMAIL,
    FAILURE_WRONG_PASSWORD,
    ClientInfo,
    record_attempt,
    record_session_safely,
)
from auth.errors import DuplicateIdentity, InvalidCredentials, ValidationError
from auth.models import Credentials, Role, Session, User
from auth.passwords import (
    DEFAULT_ROUNDS,
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    burn_verification,
    hash_password,
    verify_password,
)
from auth.store import UserStore
from auth.tokens import IssuedToken, TokenContext, issue_token

logger = logging.getLogger("upholstr.auth")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_EMAIL_RE = re.compile(EMAIL_PATTERN)


@dataclass(frozen=True)
class AuthResult:
    """What a successful register/login hands back to the HTTP layer.

    session is None when the best-effort session write failed.
    """

    user: User
    token: IssuedToken
    session: Session | None


@dataclass(frozen=True)
class _Verdict:
    user: User | None = None
    known_user_id: str | None = None  # set for wrong-password failures
    failure_reason: str | None = None


class CredentialService:
    """Credential store operations plus token issuance for one request scope.

    Holds no per-request state; one instance is built at startup and shared.
    """

    def __init__(self, store: UserStore, tokens: TokenContext, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        self.store = store
        self.tokens = tokens
        self.bcrypt_rounds = bcrypt_rounds

    # ------------------------------------------------------------------
    # Credential store operations
    # ------------------------------------------------------------------

    def register(
        self,
        email: str,
        password: str,
        full_name: str,
        phone_number: str | None = None,
        role: Role = Role.client,
    ) -> User:
        """Create an account. Raises ValidationError or DuplicateIdentity."""
        _validate_registration(email, password, full_name)
        # Fast path for the common case; the UNIQUE index covers concurrent inserts.
        if self.store.get_by_email(email) is not None:
            raise DuplicateIdentity()

        password_hash, password_salt = hash_password(password, rounds=self.bcrypt_rounds)
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            full_name=full_name,
            phone_number=phone_number,
            role=role,
            email_confirmed=False,
        )
        credentials = Credentials(
            user_id=user.id,
            password_hash=password_hash,
            password_salt=password_salt,
            confirmation_token=str(uuid.uuid4()),
        )
        created = self.store.create_user(user, credentials)
        logger.info("Registered user_id=%s role=%s", created.id, created.role.value)
        return created

    def authenticate(self, email: str, password: str) -> User:
        """Return the user if the password verifies. Raises InvalidCredentials otherwise."""
        verdict = self._decide(email, password)
        if verdict.user is None:
            raise InvalidCredentials()
        return verdict.user

    def touch_last_login(self, user_id: str) -> bool:
        """Best-effort last_login_date update. Returns False on any failure."""
        try:
            return self.store.touch_last_login(user_id)
        except Exception:
            logger.exception("Failed to update last_login_date for user_id=%s", user_id)
            return False

    # ------------------------------------------------------------------
    # Request flows
    # ------------------------------------------------------------------

    def register_and_issue(
        self,
        client: ClientInfo,
        email: str,
        password: str,
        full_name: str,
        phone_number: str | None = None,
        role: Role = Role.client,
    ) -> AuthResult:
        user = self.register(email, password, full_name, phone_number=phone_number, role=role)
        issued = issue_token(self.tokens, user.principal)

        session = record_session_safely(self.store, self.tokens, user.id, issued, client)
        record_attempt(self.store, user.id, True, client)
        return AuthResult(user=user, token=issued, session=session)

    def login(self, client: ClientInfo, email: str, password: str) -> AuthResult:
        verdict = self._decide(email, password)
        if verdict.user is None:
            record_attempt(
                self.store,
                verdict.known_user_id,
                False,
                client,
                failure_reason=verdict.failure_reason,
            )
            raise InvalidCredentials()

        user = verdict.user
        issued = issue_token(self.tokens, user.principal)

        self.touch_last_login(user.id)
        session = record_session_safely(self.store, self.tokens, user.id, issued, client)
        record_attempt(self.store, user.id, True, client)
        logger.info("Login succeeded for user_id=%s", user.id)
        return AuthResult(user=user, token=issued, session=session)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _decide(self, email: str, password: str) -> _Verdict:
        found = self.store.get_credentials_by_email(email)
        if found is None:
            burn_verification(password)
            return _Verdict(failure_reason=FAILURE_UNKNOWN_EMAIL)
        user, credentials = found
        if not verify_password(password, credentials.password_hash):
            return _Verdict(known_user_id=user.id, failure_reason=FAILURE_WRONG_PASSWORD)
        return _Verdict(user=user)


def _validate_registration(email: str, password: str, full_name: str) -> None:
    if not _EMAIL_RE.match(email or ""):
        raise ValidationError("Invalid email format")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if not (full_name or "").strip():
        raise ValidationError("Full name is required")
