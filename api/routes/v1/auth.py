"""
api/routes/v1/auth.py -- Registration, login and account self-service endpoints.

Routes:
  POST /api/auth/register        -- create account; 201 with token
  POST /api/auth/login           -- password login; 200 with token
  GET  /api/auth/me              -- current account (requires auth)
  GET  /api/auth/sessions        -- caller's own session records (requires auth)
  GET  /api/auth/login-history   -- caller's own login attempts (requires auth)

Security:
  Unknown email and wrong password both produce 401 {"error": "Invalid credentials"}.
  Cache-Control: no-store on every response that carries a token.
  The handlers are plain `def` so bcrypt runs in the threadpool, off the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    AuthResponse,
    LoginHistoryResponse,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    SessionResponse,
    UserSummary,
)
from auth.credentials import AuthResult, CredentialService
from auth.dependencies import get_client_info, get_current_user
from auth.models import User
from auth.store import UserStore

# Auth policy:
# - POST /api/auth/register:       public
# - POST /api/auth/login:          public
# - GET  /api/auth/me:             requires auth (get_current_user)
# - GET  /api/auth/sessions:       requires auth (get_current_user)
# - GET  /api/auth/login-history:  requires auth (get_current_user)
router = APIRouter()


def _auth_response(result: AuthResult, message: str, status_code: int) -> JSONResponse:
    body = AuthResponse(
        message=message,
        user=UserSummary.from_user(result.user),
        token=result.token.token,
    )
    resp = JSONResponse(status_code=status_code, content=body.model_dump(by_alias=True, mode="json"))
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and return a token for it.

    Duplicate emails are a 400 with {"error": "Email already registered"}.
    """
    service: CredentialService = request.app.state.credentials
    result = service.register_and_issue(
        get_client_info(request),
        email=body.email,
        password=body.password,
        full_name=body.full_name,
        phone_number=body.phone_number,
        role=body.role,
    )
    return _auth_response(result, "User registered successfully", 201)


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password and return a fresh token."""
    service: CredentialService = request.app.state.credentials
    result = service.login(get_client_info(request), body.email, body.password)
    return _auth_response(result, "Login successful", 200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse.from_user(current_user)


@router.get("/auth/sessions", response_model=list[SessionResponse])
def list_sessions(request: Request, current_user: User = Depends(get_current_user)) -> list[SessionResponse]:
    """Sessions recorded for the caller, newest first. Expired ones are included."""
    user_store: UserStore = request.app.state.user_store
    return [SessionResponse.from_session(s) for s in user_store.list_sessions(current_user.id)]


@router.get("/auth/login-history", response_model=list[LoginHistoryResponse])
def login_history(
    request: Request,
    current_user: User = Depends(get_current_user),
) -> list[LoginHistoryResponse]:
    """The caller's last 50 login attempts, successful or not."""
    user_store: UserStore = request.app.state.user_store
    return [LoginHistoryResponse.from_entry(e) for e in user_store.list_login_history(current_user.id)]
