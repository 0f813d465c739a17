"""
orgs/service.py -- Organisation setup, lookup, listing and update.

setup() records the caller as owner_id. update() is gated on
OwnershipGuard.is_owner() and only ever patches name and description, so the
owner cannot change through this path.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from auth.models import Organisation
from auth.store import ORGANISATIONS, CredentialStore
from core.ids import new_id
from core.results import ErrorKind, Result
from orgs.guard import MSG_NOT_OWNER, OwnershipGuard

logger = logging.getLogger("orgkeeper.orgs")

MSG_NOT_FOUND = "This organisation does not exist"
MSG_FIND_FAILED = "Error finding organisation"
MSG_SETUP_FAILED = "Caught an error while setting up organisation."
MSG_UPDATE_FAILED = "Caught an error while updating organisation details."


class OrganisationService:
    def __init__(self, store: CredentialStore, guard: OwnershipGuard) -> None:
        self._store = store
        self._guard = guard

    def setup(self, owner_id: str, name: str, description: str = "") -> Result:
        """Create an organisation owned by owner_id."""
        organisation = Organisation(id=new_id(), name=name, description=description, owner_id=owner_id)
        try:
            self._store.insert_one(
                ORGANISATIONS,
                {
                    "id": organisation.id,
                    "name": organisation.name,
                    "description": organisation.description,
                    "owner_id": organisation.owner_id,
                },
            )
            created = self._store.get_organisation(organisation.id)
        except SQLAlchemyError:
            logger.exception("Organisation setup failed")
            return Result.fail(ErrorKind.storage_error, MSG_SETUP_FAILED)
        logger.info("Organisation %s set up by %s", organisation.id, owner_id)
        return Result.ok(organisation=created or organisation)

    def get(self, organisation_id: str) -> Result:
        try:
            organisation = self._store.get_organisation(organisation_id)
        except SQLAlchemyError:
            logger.exception("Organisation lookup failed")
            return Result.fail(ErrorKind.storage_error, MSG_FIND_FAILED)
        if organisation is None:
            return Result.fail(ErrorKind.organisation_not_found, MSG_NOT_FOUND)
        return Result.ok(organisation=organisation)

    def list_for_owner(self, owner_id: str) -> Result:
        try:
            organisations = self._store.list_organisations_by_owner(owner_id)
        except SQLAlchemyError:
            logger.exception("Organisation listing failed")
            return Result.fail(ErrorKind.storage_error, MSG_FIND_FAILED)
        return Result.ok(organisations=organisations)

    def update(self, organisation_id: str, user_id: str, name: str, description: str) -> Result:
        """Replace name and description. Owner only.

        Both fields are written on every call, as a full replacement of the
        mutable part of the record.
        """
        if not self._guard.is_owner(organisation_id, user_id):
            return Result.fail(ErrorKind.not_owner, MSG_NOT_OWNER)
        try:
            self._store.update_one(
                ORGANISATIONS,
                {"id": organisation_id},
                {"name": name, "description": description},
            )
        except SQLAlchemyError:
            logger.exception("Organisation update failed")
            return Result.fail(ErrorKind.storage_error, MSG_UPDATE_FAILED)
        logger.info("Organisation %s updated by %s", organisation_id, user_id)
        return Result.ok()
