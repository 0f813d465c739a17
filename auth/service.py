"""
auth/service.py -- Registration and login orchestration (AuthCore).

Registration:
  Unregistered --register()--> Registered. The email existence check runs
  first; if it passes, the password is hashed and the record inserted. The
  check-then-insert pair is NOT transactional, so the UNIQUE constraint on
  users.email is the real guard. On an IntegrityError the email is counted
  again: if it is now taken the answer is "User exists", exactly like the
  pre-check, otherwise the conflict was on the generated id and is a
  storage_error.

  A password longer than bcrypt's 72-byte input limit is refused with
  invalid_credentials before anything is hashed.

  register_and_issue() is what the HTTP layer calls. A freshly created record
  is trusted and a session token is issued straight away, with no second
  password check.

Login:
  Unknown email and wrong password both return invalid_credentials, with
  distinct messages. An unknown email returns before any hashing, so no
  timing equalization is performed.

Every public method returns a core.results.Result and never raises. Storage
failures are logged and converted to storage_error with the messages below;
a malformed stored digest on login becomes malformed_credential. Nothing is
retried.

Layer rule: no imports from api/, orgs/, or mail/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.hashing import HashService, password_fits
from auth.store import USERS, CredentialStore
from auth.tokens import TokenService
from core.results import ErrorKind, MalformedCredential, Result

logger = logging.getLogger("orgkeeper.auth")

MSG_USER_EXISTS = "User exists"
MSG_REGISTER_FAILED = "[Register]: Caught an error while registering user."
MSG_ADD_USER_FAILED = "[Register]: Caught an error while adding/updating user"
MSG_UNKNOWN_EMAIL = "Email entered is incorrect"
MSG_WRONG_PASSWORD = "Password entered is incorrect"
MSG_LOGIN_FAILED = "[Login]: Caught an error while getting user from the database."
MSG_PASSWORD_TOO_LONG = "Password is too long"


class AuthCore:
    """Registration and login on top of a CredentialStore.

    Usage:
        core = AuthCore(store, HashService(), TokenService(secret_key=key))
        result = core.register_and_issue(new_id(), "a@x.com", "p1")
        result.get("token")
        core.login("a@x.com", "p1").get("token")
    """

    def __init__(self, store: CredentialStore, hasher: HashService, tokens: TokenService) -> None:
        self._store = store
        self._hasher = hasher
        self._tokens = tokens

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, id: str, email: str, password: str) -> Result:
        """Create a user record if no user with this email exists."""
        if not password_fits(password):
            return Result.fail(ErrorKind.invalid_credentials, MSG_PASSWORD_TOO_LONG)
        try:
            found = self._store.count(USERS, {"email": email})
        except SQLAlchemyError:
            logger.exception("Existence check failed during registration")
            return Result.fail(ErrorKind.storage_error, MSG_REGISTER_FAILED)
        if found > 0:
            return Result.fail(ErrorKind.user_exists, MSG_USER_EXISTS)
        return self._add_user(id, email, password)

    def register_and_issue(self, id: str, email: str, password: str) -> Result:
        """Register, then issue a session token for the new identity."""
        registered = self.register(id, email, password)
        if not registered.success:
            return registered
        return Result.ok(token=self._tokens.issue_session_token(email))

    def _add_user(self, id: str, email: str, password: str) -> Result:
        try:
            digest = self._hasher.hash(password)
            self._store.insert_one(USERS, {"id": id, "email": email, "password_hash": digest})
        except IntegrityError:
            return self._explain_conflict(id, email)
        except (SQLAlchemyError, ValueError):
            logger.exception("Insert failed during registration")
            return Result.fail(ErrorKind.storage_error, MSG_ADD_USER_FAILED)
        logger.info("Registered user %s", id)
        return Result.ok()

    def _explain_conflict(self, id: str, email: str) -> Result:
        # Either a concurrent registration won the race for this email, or
        # the generated id collided with an existing one.
        try:
            taken = self._store.count(USERS, {"email": email}) > 0
        except SQLAlchemyError:
            logger.exception("Existence re-check failed after insert conflict")
            return Result.fail(ErrorKind.storage_error, MSG_ADD_USER_FAILED)
        if taken:
            logger.info("Duplicate email rejected by store constraint")
            return Result.fail(ErrorKind.user_exists, MSG_USER_EXISTS)
        logger.error("Insert conflict for user id %s with no matching email", id)
        return Result.fail(ErrorKind.storage_error, MSG_ADD_USER_FAILED)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> Result:
        """Verify credentials and return a session token on success."""
        try:
            user = self._store.get_user_by_email(email)
            if user is None:
                return Result.fail(ErrorKind.invalid_credentials, MSG_UNKNOWN_EMAIL)
            match = self._hasher.verify(password, user.password_hash)
        except SQLAlchemyError:
            logger.exception("Login lookup failed")
            return Result.fail(ErrorKind.storage_error, MSG_LOGIN_FAILED)
        except MalformedCredential as exc:
            logger.error("Stored digest for %s is malformed", email)
            return Result.fail(exc.kind, MSG_LOGIN_FAILED)

        if not match:
            return Result.fail(ErrorKind.invalid_credentials, MSG_WRONG_PASSWORD)
        return Result.ok(token=self._tokens.issue_session_token(user.email))
