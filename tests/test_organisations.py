"""Unit tests for orgs/service.py -- OrganisationService.

Covers:
- setup records the caller as owner and assigns an id
- get / list_for_owner
- update by owner patches name + description only; owner_id untouched
- update by anyone else is denied with not_owner and changes nothing
- storage failures become storage_error
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from auth.store import USERS
from core.results import ErrorKind
from orgs.guard import MSG_NOT_OWNER, OwnershipGuard
from orgs.service import MSG_NOT_FOUND, MSG_UPDATE_FAILED, OrganisationService


@pytest.fixture
def organisations(store, tokens):
    store.insert_one(USERS, {"id": "u1", "email": "owner@x.com", "password_hash": "h"})
    store.insert_one(USERS, {"id": "u2", "email": "other@x.com", "password_hash": "h"})
    return OrganisationService(store, OwnershipGuard(store, tokens))


class TestSetupAndLookup:
    def test_setup(self, organisations):
        result = organisations.setup("u1", "Acme", "Widgets")
        assert result.success
        organisation = result.get("organisation")
        assert organisation.id
        assert organisation.owner_id == "u1"
        assert organisation.name == "Acme"
        assert organisation.description == "Widgets"
        assert organisation.created_at

    def test_get(self, organisations):
        created = organisations.setup("u1", "Acme").get("organisation")
        result = organisations.get(created.id)
        assert result.get("organisation").name == "Acme"

    def test_get_missing(self, organisations):
        result = organisations.get("missing")
        assert result.kind is ErrorKind.organisation_not_found
        assert result.errors == [MSG_NOT_FOUND]

    def test_list_for_owner(self, organisations):
        organisations.setup("u1", "A")
        organisations.setup("u1", "B")
        organisations.setup("u2", "C")
        names = sorted(o.name for o in organisations.list_for_owner("u1").get("organisations"))
        assert names == ["A", "B"]


class TestUpdate:
    def test_owner_updates(self, organisations):
        org_id = organisations.setup("u1", "Acme", "old").get("organisation").id
        result = organisations.update(org_id, "u1", "Acme Ltd", "new")
        assert result.success
        organisation = organisations.get(org_id).get("organisation")
        assert organisation.name == "Acme Ltd"
        assert organisation.description == "new"
        assert organisation.owner_id == "u1"

    def test_non_owner_denied(self, organisations):
        org_id = organisations.setup("u1", "Acme", "old").get("organisation").id
        result = organisations.update(org_id, "u2", "Hijacked", "x")
        assert result.kind is ErrorKind.not_owner
        assert result.errors == [MSG_NOT_OWNER]
        assert organisations.get(org_id).get("organisation").name == "Acme"

    def test_missing_organisation_denied(self, organisations):
        result = organisations.update("missing", "u1", "x", "y")
        assert result.kind is ErrorKind.not_owner

    def test_storage_failure(self, tokens):
        store = MagicMock()
        guard = MagicMock(spec=OwnershipGuard)
        guard.is_owner.return_value = True
        store.update_one.side_effect = OperationalError("UPDATE", {}, Exception("disk I/O error"))
        result = OrganisationService(store, guard).update("o1", "u1", "x", "y")
        assert result.kind is ErrorKind.storage_error
        assert result.errors == [MSG_UPDATE_FAILED]
