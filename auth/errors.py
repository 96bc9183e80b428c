"""
auth/errors.py -- Error taxonomy for the credential core and its callers.

Every error carries the HTTP status it maps to and the message that is safe
to return verbatim. api/main.py turns any AuthError into {"error": message}.
StoreUnavailable is the exception: its message is for the server log only,
and the handler replaces it with a generic 500 body.

Layer rule: no imports from api/, core/, or marketplace/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for errors produced by the credential core."""

    status_code: int = 400
    message: str = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    message = "Invalid request"


class DuplicateIdentity(AuthError):
    status_code = 400
    message = "Email already registered"


class InvalidCredentials(AuthError):
    """Unknown email and wrong password. The two cases are never distinguished."""

    status_code = 401
    message = "Invalid credentials"

    def __init__(self) -> None:
        # No message override: every instance must read identically.
        super().__init__()


class InvalidToken(AuthError):
    status_code = 401
    message = "Unauthorized"


class Forbidden(AuthError):
    status_code = 403
    message = "Forbidden"


class NotFound(AuthError):
    status_code = 404
    message = "Not found"


class StoreUnavailable(AuthError):
    """The backing store could not be reached. Never retried internally."""

    status_code = 500
    message = "Backing store unavailable"
