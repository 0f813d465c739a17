"""
orgs/guard.py -- Ownership checks for organisation-scoped operations.

A session token carries only an email, while ownership is keyed by user id,
so "who is calling" is a two-step lookup: token -> email -> User.id.

is_owner() re-reads the organisation on every call. Nothing is cached, so a
decision always reflects the stored owner_id and never the session. Any
failure on either side (unknown organisation, storage error, empty id) is a
denial: the guard fails closed.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from auth.store import CredentialStore
from auth.tokens import TokenService
from core.results import ErrorKind, InvalidToken, Result

logger = logging.getLogger("orgkeeper.orgs.guard")

MSG_NO_USER_ID = "Could not fetch User ID"
MSG_NOT_OWNER = "You are not the owner"


class OwnershipGuard:
    def __init__(self, store: CredentialStore, tokens: TokenService) -> None:
        self._store = store
        self._tokens = tokens

    def resolve_user_id(self, token: str) -> Result:
        """Return Result(user_id=...) for the identity behind a session token."""
        try:
            email = self._tokens.resolve_identity(token)
        except InvalidToken as exc:
            logger.info("Session token rejected: %s", exc)
            return Result.fail(exc.kind, str(exc))
        try:
            user = self._store.get_user_by_email(email)
        except SQLAlchemyError:
            logger.exception("User lookup failed while resolving session")
            return Result.fail(ErrorKind.storage_error, MSG_NO_USER_ID)
        if user is None:
            return Result.fail(ErrorKind.user_not_found, MSG_NO_USER_ID)
        return Result.ok(user_id=user.id, email=user.email)

    def is_owner(self, organisation_id: str, user_id: str | None) -> bool:
        """Return True only if the stored owner_id equals user_id."""
        if not organisation_id or not user_id:
            return False
        try:
            organisation = self._store.get_organisation(organisation_id)
        except SQLAlchemyError:
            logger.exception("Organisation lookup failed during ownership check")
            return False
        if organisation is None:
            return False
        return organisation.owner_id == user_id
