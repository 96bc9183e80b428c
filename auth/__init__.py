"""auth/ -- Credential and session lifecycle for Upholstr.

Password hashing, token issuance and verification, session and login-audit
bookkeeping, and the ownership gate used by every protected resource route.

Layer rule: auth/ imports only stdlib + third-party libraries, plus
core.config for type hints. It does NOT import from api/ or marketplace/.
api/ imports from auth/, not the other way around.
"""
