"""
core/results.py -- Tagged result values and error kinds for core operations.

Every core operation (registration, login, ownership checks, organisation
updates, invites) returns a Result instead of raising. Callers branch on
Result.kind, never on message text. The messages are still carried verbatim
so the API layer can hand them to the client unchanged.

The exception classes below are raised *inside* the core by lower layers
(hashing, token decoding, mail) and converted at the operation boundary.
InvalidToken and MalformedCredential carry the ErrorKind they become as
`kind`. Storage failures are not wrapped: sqlalchemy.exc.SQLAlchemyError
reaches the operation boundary unchanged and becomes storage_error there.

Layer rule: core/ is the kernel. No imports from api/, auth/, orgs/, or mail/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    user_exists = "user_exists"
    invalid_credentials = "invalid_credentials"
    storage_error = "storage_error"
    invalid_token = "invalid_token"
    malformed_credential = "malformed_credential"
    organisation_not_found = "organisation_not_found"
    not_owner = "not_owner"
    user_not_found = "user_not_found"


@dataclass(frozen=True)
class Result:
    """Outcome of a core operation.

    success=True  -- data holds the named values (e.g. {"token": "..."}).
    success=False -- kind classifies the failure; errors holds one or more
                     human-readable messages.
    """

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls, **data: Any) -> Result:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, *messages: str) -> Result:
        return cls(success=False, errors=list(messages) or [kind.value], kind=kind)

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)


# ---------------------------------------------------------------------------
# Exceptions raised below the operation boundary
# ---------------------------------------------------------------------------


class OrgKeeperError(Exception):
    """Base class for errors raised inside the core."""


class InvalidToken(OrgKeeperError):
    """Signature mismatch, malformed structure, wrong token class, or expired."""

    kind = ErrorKind.invalid_token


class MalformedCredential(OrgKeeperError):
    """A stored password digest is not a valid bcrypt hash."""

    kind = ErrorKind.malformed_credential


class MailDeliveryError(OrgKeeperError):
    """The mail transport failed to hand a message to the relay.

    Never becomes a Result: the invite flow records it as a per-address
    outcome.
    """
