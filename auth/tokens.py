"""
auth/tokens.py -- Signed session and invite tokens (JWT, HS256).

Security design decisions:
  JWT: python-jose with HS256. Two token classes share the format but never
       the trust path:

         session -- {sub: email, typ: "session", iat, exp}
         invite  -- {sub: email, manager, org_id, typ: "invite", iat, exp}

       The typ claim is part of the signed payload, so a token minted for one
       class cannot be replayed as the other even when both are signed with
       the same key. Deployments that want harder separation set
       INVITE_SECRET_KEY and the two classes stop sharing a key as well.

  Expiry: fixed TTL per class (session 1h, invite 7d by default). There is
       no revocation list; a session token is valid until exp.

  Secrets: injected at construction. TokenService holds them read-only and
       never consults global state, so tests can run several instances with
       different keys in the same process.

  Failures: every decode failure (bad signature, malformed structure, wrong
       typ, missing claims, expired) raises InvalidToken. Callers convert
       that into a Result at their boundary.

Layer rule: no imports from api/, orgs/, or mail/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import InviteClaims
from core.results import InvalidToken

logger = logging.getLogger("orgkeeper.auth.tokens")

_ALGORITHM = "HS256"

SESSION_TOKEN_TYPE = "session"
INVITE_TOKEN_TYPE = "invite"


class TokenService:
    """Mint and verify session and invite tokens.

    Usage:
        tokens = TokenService(secret_key=settings.secret_key)
        session = tokens.issue_session_token("a@x.com")
        tokens.resolve_identity(session)            # "a@x.com"
        invite = tokens.issue_invite_token("b@x.com", True, "org123")
        tokens.resolve_invite(invite)                # InviteClaims(...)
    """

    def __init__(
        self,
        secret_key: str,
        invite_secret_key: str | None = None,
        session_ttl_seconds: int = 3600,
        invite_ttl_seconds: int = 7 * 24 * 3600,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret_key")
        self._session_key = secret_key
        self._invite_key = invite_secret_key or secret_key
        self._session_ttl = session_ttl_seconds
        self._invite_ttl = invite_ttl_seconds

    @property
    def session_ttl_seconds(self) -> int:
        return self._session_ttl

    # ------------------------------------------------------------------
    # Session tokens
    # ------------------------------------------------------------------

    def issue_session_token(self, email: str) -> str:
        """Return a signed session token whose only identity claim is email."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": email,
            "typ": SESSION_TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(seconds=self._session_ttl),
        }
        return jwt.encode(payload, self._session_key, algorithm=_ALGORITHM)

    def resolve_identity(self, token: str) -> str:
        """Verify a session token and return its email claim.

        Raises InvalidToken on signature mismatch, malformed structure, expiry,
        or when the token is not a session token (e.g. an invite token).
        """
        payload = self._decode(token, self._session_key, SESSION_TOKEN_TYPE)
        email = payload.get("sub")
        if not isinstance(email, str) or not email:
            raise InvalidToken("Session token carries no identity")
        return email

    # ------------------------------------------------------------------
    # Invite tokens
    # ------------------------------------------------------------------

    def issue_invite_token(self, email: str, manager: bool, organisation_id: str) -> str:
        """Return a signed invite token binding email, role flag and organisation."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": email,
            "manager": bool(manager),
            "org_id": organisation_id,
            "typ": INVITE_TOKEN_TYPE,
            "iat": now,
            "exp": now + timedelta(seconds=self._invite_ttl),
        }
        return jwt.encode(payload, self._invite_key, algorithm=_ALGORITHM)

    def resolve_invite(self, token: str) -> InviteClaims:
        """Verify an invite token and return its claims.

        Raises InvalidToken for anything that is not a valid, unexpired invite
        token -- including a perfectly valid session token.
        """
        payload = self._decode(token, self._invite_key, INVITE_TOKEN_TYPE)
        email = payload.get("sub")
        org_id = payload.get("org_id")
        manager = payload.get("manager")
        if not isinstance(email, str) or not isinstance(org_id, str) or not isinstance(manager, bool):
            raise InvalidToken("Invite token is missing required claims")
        return InviteClaims(email=email, manager=manager, organisation_id=org_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(token: str, key: str, expected_type: str) -> dict:
        if not token or not isinstance(token, str):
            raise InvalidToken("Token is empty")
        try:
            payload = jwt.decode(token, key, algorithms=[_ALGORITHM])
        except JWTError as exc:
            raise InvalidToken(f"Token verification failed: {exc}") from exc
        if payload.get("typ") != expected_type:
            logger.warning("Rejected %s token presented as %s", payload.get("typ"), expected_type)
            raise InvalidToken(f"Token is not a {expected_type} token")
        return payload
