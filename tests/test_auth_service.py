"""Unit tests for auth/service.py -- AuthCore registration and login.

Covers:
- register -> login -> token resolves to the same email
- second registration with the same email fails with user_exists and leaves one record
- store-level duplicate (lost race) is also reported as user_exists
- unknown email / wrong password -> invalid_credentials with distinct messages
- unknown email returns without hashing
- storage failures become storage_error, a malformed digest becomes
  malformed_credential; neither raises
- an insert conflict is user_exists only when the email is really taken
- passwords over 72 UTF-8 bytes: refused at register, a mismatch at login
- register_and_issue returns a session token without re-checking the password
"""

from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.service import (
    MSG_ADD_USER_FAILED,
    MSG_LOGIN_FAILED,
    MSG_PASSWORD_TOO_LONG,
    MSG_REGISTER_FAILED,
    MSG_UNKNOWN_EMAIL,
    MSG_USER_EXISTS,
    MSG_WRONG_PASSWORD,
    AuthCore,
)
from auth.store import USERS
from core.results import ErrorKind


@pytest.fixture
def core(store, hasher, tokens):
    return AuthCore(store, hasher, tokens)


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("database is locked"))


class TestRegister:
    def test_register_success(self, core, store):
        result = core.register("u1", "a@x.com", "p1")
        assert result.success is True
        assert result.kind is None
        user = store.get_user_by_email("a@x.com")
        assert user.id == "u1"
        assert user.password_hash != "p1"

    def test_duplicate_email(self, core, store):
        assert core.register("u1", "a@x.com", "p1").success
        result = core.register("u2", "a@x.com", "other")
        assert result.success is False
        assert result.kind is ErrorKind.user_exists
        assert result.errors == [MSG_USER_EXISTS]
        assert store.count(USERS, {"email": "a@x.com"}) == 1

    def test_case_variant_is_a_different_email(self, core):
        assert core.register("u1", "a@x.com", "p1").success
        assert core.register("u2", "A@x.com", "p1").success

    def test_lost_race_reported_as_user_exists(self, hasher, tokens):
        racing_store = MagicMock()
        # empty at the pre-check, taken by the time the insert lands
        racing_store.count.side_effect = [0, 1]
        racing_store.insert_one.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        result = AuthCore(racing_store, hasher, tokens).register("u2", "a@x.com", "p1")
        assert result.kind is ErrorKind.user_exists
        assert result.errors == [MSG_USER_EXISTS]

    def test_id_collision_is_not_user_exists(self, hasher, tokens):
        store = MagicMock()
        store.count.side_effect = [0, 0]
        store.insert_one.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: users.id"))
        result = AuthCore(store, hasher, tokens).register("u1", "a@x.com", "p1")
        assert result.kind is ErrorKind.storage_error
        assert result.errors == [MSG_ADD_USER_FAILED]

    def test_id_collision_against_real_store(self, core, store):
        assert core.register("u1", "a@x.com", "p1").success
        result = core.register("u1", "b@x.com", "p1")
        assert result.kind is ErrorKind.storage_error
        assert store.count(USERS, {"email": "b@x.com"}) == 0

    def test_overlong_password_refused_before_hashing(self, core, store):
        with patch.object(core._hasher, "hash") as hash_:
            result = core.register("u1", "a@x.com", "é" * 40)
        assert result.kind is ErrorKind.invalid_credentials
        assert result.errors == [MSG_PASSWORD_TOO_LONG]
        hash_.assert_not_called()
        assert store.count(USERS, {"email": "a@x.com"}) == 0

    def test_existence_check_failure(self, hasher, tokens):
        broken = MagicMock()
        broken.count.side_effect = _db_error()
        result = AuthCore(broken, hasher, tokens).register("u1", "a@x.com", "p1")
        assert result.kind is ErrorKind.storage_error
        assert result.errors == [MSG_REGISTER_FAILED]
        broken.insert_one.assert_not_called()

    def test_insert_failure(self, hasher, tokens):
        broken = MagicMock()
        broken.count.return_value = 0
        broken.insert_one.side_effect = _db_error()
        result = AuthCore(broken, hasher, tokens).register("u1", "a@x.com", "p1")
        assert result.kind is ErrorKind.storage_error
        assert result.errors == [MSG_ADD_USER_FAILED]

    def test_register_and_issue(self, core, tokens):
        result = core.register_and_issue("u1", "a@x.com", "p1")
        assert result.success
        assert tokens.resolve_identity(result.get("token")) == "a@x.com"

    def test_register_and_issue_skips_password_check(self, core):
        with patch.object(core._hasher, "verify") as verify:
            assert core.register_and_issue("u1", "a@x.com", "p1").success
        verify.assert_not_called()

    def test_register_and_issue_propagates_failure(self, core):
        core.register("u1", "a@x.com", "p1")
        result = core.register_and_issue("u2", "a@x.com", "p1")
        assert result.kind is ErrorKind.user_exists
        assert "token" not in result.data


class TestLogin:
    def test_login_success(self, core, tokens):
        core.register("u1", "a@x.com", "p1")
        result = core.login("a@x.com", "p1")
        assert result.success
        token = result.get("token")
        assert token
        assert tokens.resolve_identity(token) == "a@x.com"

    def test_wrong_password(self, core):
        core.register("u1", "a@x.com", "p1")
        result = core.login("a@x.com", "wrong")
        assert result.kind is ErrorKind.invalid_credentials
        assert result.errors == [MSG_WRONG_PASSWORD]

    def test_unknown_email(self, core):
        core.register("u1", "a@x.com", "p1")
        result = core.login("b@x.com", "p1")
        assert result.kind is ErrorKind.invalid_credentials
        assert result.errors == [MSG_UNKNOWN_EMAIL]

    def test_unknown_email_does_not_hash(self, core):
        with patch.object(core._hasher, "verify") as verify:
            core.login("nobody@x.com", "p1")
        verify.assert_not_called()

    def test_storage_failure(self, hasher, tokens):
        broken = MagicMock()
        broken.get_user_by_email.side_effect = _db_error()
        result = AuthCore(broken, hasher, tokens).login("a@x.com", "p1")
        assert result.kind is ErrorKind.storage_error
        assert result.errors == [MSG_LOGIN_FAILED]

    def test_malformed_stored_digest(self, core, store):
        store.insert_one(USERS, {"id": "u1", "email": "a@x.com", "password_hash": "plaintext-oops"})
        result = core.login("a@x.com", "p1")
        assert result.success is False
        assert result.kind is ErrorKind.malformed_credential
        assert result.errors == [MSG_LOGIN_FAILED]

    def test_overlong_wrong_password_is_invalid_credentials(self, core):
        core.register("u1", "a@x.com", "p1")
        result = core.login("a@x.com", "x" * 73)
        assert result.kind is ErrorKind.invalid_credentials
        assert result.errors == [MSG_WRONG_PASSWORD]
