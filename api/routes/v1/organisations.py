"""
api/routes/v1/organisations.py -- Organisation and invite REST endpoints.

Routes:
  POST /api/v1/organisations                 -- set up an organisation owned by the caller
  GET  /api/v1/organisations                 -- list organisations the caller owns
  GET  /api/v1/organisations/{id}            -- organisation detail
  POST /api/v1/organisations/{id}            -- update name/description (owner only)
  POST /api/v1/organisations/{id}/invite     -- mail invites (owner only)
  POST /api/v1/invites/resolve               -- decode and verify an invite token

Store-backed handlers are plain def so FastAPI runs them in its threadpool;
only the invite fan-out and the store-free invite resolution are async.

Authorization:
  Every route except /invites/resolve requires a bearer session token.
  Ownership is re-derived from the stored owner_id on each request through
  OwnershipGuard; the session token itself carries no organisation scope.
  A caller who cannot be resolved, or who is not the owner, is denied.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.errors import raise_for_result
from api.models import (
    InviteClaimsResponse,
    InviteOutcomeRow,
    InviteRequest,
    InviteResolveRequest,
    InviteResponse,
    OrganisationCreate,
    OrganisationResponse,
    OrganisationUpdate,
    SuccessResponse,
)
from auth.dependencies import get_current_user_id
from auth.tokens import TokenService
from core.results import InvalidToken, Result
from orgs.invites import InviteOrchestrator
from orgs.service import OrganisationService

logger = logging.getLogger("orgkeeper.api.organisations")

# Auth policy:
# - POST /organisations:                 requires auth (get_current_user_id)
# - GET  /organisations:                 requires auth
# - GET  /organisations/{id}:            requires auth
# - POST /organisations/{id}:            requires auth + ownership
# - POST /organisations/{id}/invite:     requires auth + ownership
# - POST /invites/resolve:               public -- the token is the credential
router = APIRouter()


@router.post("/organisations", response_model=OrganisationResponse, status_code=201)
def setup_organisation(
    request: Request,
    body: OrganisationCreate,
    user_id: str = Depends(get_current_user_id),
) -> OrganisationResponse:
    """Create an organisation. The caller becomes its owner."""
    organisations: OrganisationService = request.app.state.organisations
    result = organisations.setup(user_id, body.name, body.description)
    raise_for_result(result)
    return OrganisationResponse.from_domain(result.get("organisation"))


@router.get("/organisations", response_model=list[OrganisationResponse])
def list_organisations(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> list[OrganisationResponse]:
    """List organisations owned by the caller, oldest first."""
    organisations: OrganisationService = request.app.state.organisations
    result = organisations.list_for_owner(user_id)
    raise_for_result(result)
    return [OrganisationResponse.from_domain(o) for o in result.get("organisations")]


@router.get("/organisations/{organisation_id}", response_model=OrganisationResponse)
def get_organisation(
    request: Request,
    organisation_id: str,
    user_id: str = Depends(get_current_user_id),
) -> OrganisationResponse:
    organisations: OrganisationService = request.app.state.organisations
    result = organisations.get(organisation_id)
    raise_for_result(result)
    return OrganisationResponse.from_domain(result.get("organisation"))


@router.post("/organisations/{organisation_id}", response_model=SuccessResponse)
def update_organisation(
    request: Request,
    organisation_id: str,
    body: OrganisationUpdate,
    user_id: str = Depends(get_current_user_id),
) -> SuccessResponse:
    """Replace the organisation's name and description. Owner only."""
    organisations: OrganisationService = request.app.state.organisations
    result = organisations.update(organisation_id, user_id, body.name, body.description)
    raise_for_result(result)
    return SuccessResponse()


@router.post("/organisations/{organisation_id}/invite", response_model=InviteResponse)
async def invite_members(
    request: Request,
    organisation_id: str,
    body: InviteRequest,
    user_id: str = Depends(get_current_user_id),
) -> InviteResponse:
    """Mail one invite per address. Owner only.

    Responds after every send has settled. Per-address failures are listed in
    outcomes; they do not fail the request.
    """
    invites: InviteOrchestrator = request.app.state.invites
    result = await invites.invite(user_id, organisation_id, body.emails, body.manager)
    raise_for_result(result)
    report = result.get("report")
    return InviteResponse(
        organisation_id=report.organisation_id,
        sent=len(report.sent),
        failed=len(report.failed),
        outcomes=[InviteOutcomeRow(email=o.email, sent=o.sent, error=o.error) for o in report.outcomes],
    )


@router.post("/invites/resolve", response_model=InviteClaimsResponse)
async def resolve_invite(request: Request, body: InviteResolveRequest) -> InviteClaimsResponse:
    """Verify an invite token and return the claims it carries.

    Session tokens are rejected here, just as invite tokens are rejected by
    the session path.
    """
    tokens: TokenService = request.app.state.tokens
    try:
        claims = tokens.resolve_invite(body.token)
    except InvalidToken as exc:
        logger.info("Invite token rejected: %s", exc)
        raise_for_result(Result.fail(exc.kind, str(exc)))
    return InviteClaimsResponse.from_domain(claims)
