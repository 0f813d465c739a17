"""
api/routes/v1/auth.py -- Registration and login REST endpoints.

Routes:
  POST /api/v1/auth/register   -- create a user; returns a session token (201)
  POST /api/v1/auth/login      -- password login; returns a session token
  GET  /api/v1/auth/me         -- identity behind the bearer token (requires auth)

Security:
  [H2] POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [M5] Cache-Control: no-store on every response that carries a token.
  Register issues a token immediately: the record was just created from these
  credentials, so there is no second password check.
  The user id for a new record comes from core.ids.new_id(); clients never
  choose it.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.errors import raise_for_result
from api.limiter import LOGIN_RATE_LIMIT, limiter
from api.models import LoginRequest, MeResponse, RegisterRequest, TokenResponse
from auth.dependencies import get_session_token
from auth.service import AuthCore
from core.ids import new_id
from orgs.guard import OwnershipGuard

# Auth policy:
# - POST /api/v1/auth/register:  public
# - POST /api/v1/auth/login:     public, rate-limited
# - GET  /api/v1/auth/me:        requires a bearer session token
router = APIRouter()


def _token_response(request: Request, token: str, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=TokenResponse(
            token=token,
            expires_in=request.app.state.tokens.session_ttl_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/auth/register", response_model=TokenResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and return a session token for it."""
    auth_core: AuthCore = request.app.state.auth_core
    result = auth_core.register_and_issue(new_id(), body.email, body.password)
    raise_for_result(result)
    return _token_response(request, result.get("token"), 201)


@limiter.limit(LOGIN_RATE_LIMIT)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/login", response_model=TokenResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return a session token.

    Unknown email and wrong password both answer 401 invalid_credentials,
    with the core's message telling them apart.
    """
    auth_core: AuthCore = request.app.state.auth_core
    result = auth_core.login(body.email, body.password)
    raise_for_result(result)
    return _token_response(request, result.get("token"), 200)


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, token: str = Depends(get_session_token)) -> MeResponse:
    """Return identity information for the bearer of the session token."""
    guard: OwnershipGuard = request.app.state.guard
    resolved = guard.resolve_user_id(token)
    raise_for_result(resolved)
    return MeResponse(id=resolved.get("user_id"), email=resolved.get("email"))
