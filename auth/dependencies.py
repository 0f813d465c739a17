"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Session tokens arrive as "Authorization: Bearer <token>". There is no cookie
or API-key path; every authenticated route carries the header.

get_session_token() extracts the raw token and raises HTTP 401 if absent.
get_current_user_id() resolves the token through the OwnershipGuard on
app.state (token -> email -> user id) and raises HTTP 401 on any failure.
Resolution is repeated on every request; nothing about the caller is cached.

Layer rule: auth/dependencies.py may import from fastapi because it is part
of the FastAPI dependency injection system. The guard is reached through
request.app.state, never imported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, Request

if TYPE_CHECKING:
    from orgs.guard import OwnershipGuard

_BEARER_PREFIX = "Bearer "


def get_session_token(request: Request) -> str:
    """Return the bearer token from the Authorization header or raise 401."""
    auth_header = request.headers.get("Authorization", "")
    token = auth_header[len(_BEARER_PREFIX) :].strip() if auth_header.startswith(_BEARER_PREFIX) else ""
    if not token:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return token


def get_current_user_id(request: Request, token: str = Depends(get_session_token)) -> str:
    """Require a valid session. Returns the caller's user id.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(user_id: str = Depends(get_current_user_id)): ...
    """
    guard: OwnershipGuard = request.app.state.guard
    resolved = guard.resolve_user_id(token)
    if not resolved.success:
        raise HTTPException(
            status_code=401,
            detail={
                "code": resolved.kind.value if resolved.kind else "unauthorized",
                "message": resolved.errors[0],
            },
        )
    return resolved.get("user_id")
