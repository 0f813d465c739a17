"""
API request and response models for OrgKeeper REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Email fields are passed through untouched (no strip, no lower-casing):
addresses are compared as exact strings everywhere in the core.
"""

import json
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.hashing import MAX_PASSWORD_BYTES, password_fits
from auth.models import InviteClaims, Organisation

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_MAX_PASSWORD_LENGTH = MAX_PASSWORD_BYTES
_MAX_EMAIL_LENGTH = 320
_MAX_INVITES = 50


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


def _check_password_bytes(value: str) -> str:
    # max_length counts characters; bcrypt counts UTF-8 bytes.
    if not password_fits(value):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
    return value


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    email: str = Field(min_length=3, max_length=_MAX_EMAIL_LENGTH)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=1, max_length=_MAX_EMAIL_LENGTH)
    password: str = Field(min_length=1, max_length=_MAX_PASSWORD_LENGTH)

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        return _check_password_bytes(value)


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    token: str
    token_type: str = "bearer"
    expires_in: int


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: str


# ---------------------------------------------------------------------------
# Organisations
# ---------------------------------------------------------------------------


class OrganisationCreate(BaseModel):
    """Request body for POST /api/v1/organisations."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=2000)


class OrganisationUpdate(BaseModel):
    """Request body for POST /api/v1/organisations/{id}.

    Only name and description are accepted; owner_id is not part of the
    contract and extra fields are rejected.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=2000)


class OrganisationResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    owner_id: str
    created_at: str

    @classmethod
    def from_domain(cls, organisation: Organisation) -> "OrganisationResponse":
        return cls(
            id=organisation.id,
            name=organisation.name,
            description=organisation.description,
            owner_id=organisation.owner_id,
            created_at=organisation.created_at or "",
        )


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------


class InviteRequest(BaseModel):
    """Request body for POST /api/v1/organisations/{id}/invite.

    emails keeps input order and duplicates: each entry produces its own
    invite. A JSON-encoded string ('["a@x.com", "b@x.com"]') is accepted as
    well as a plain list, for form-encoded clients.
    """

    emails: list[str] = Field(min_length=1, max_length=_MAX_INVITES)
    manager: bool = False

    @field_validator("emails", mode="before")
    @classmethod
    def decode_emails(cls, value):
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError as exc:
                raise ValueError("emails must be a list or a JSON-encoded list") from exc
        return value


class InviteOutcomeRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    sent: bool
    error: Optional[str] = None


class InviteResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True
    organisation_id: str
    sent: int
    failed: int
    outcomes: list[InviteOutcomeRow]


class InviteResolveRequest(BaseModel):
    token: str = Field(min_length=1)


class InviteClaimsResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    manager: bool
    organisation_id: str

    @classmethod
    def from_domain(cls, claims: InviteClaims) -> "InviteClaimsResponse":
        return cls(email=claims.email, manager=claims.manager, organisation_id=claims.organisation_id)


# ---------------------------------------------------------------------------
# Generic
# ---------------------------------------------------------------------------


class SuccessResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool = True


class ErrorDetail(BaseModel):
    """Machine-readable error payload.

    code is the core ErrorKind value; message is the first human-readable
    error; detail joins every error when the core reported several.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
