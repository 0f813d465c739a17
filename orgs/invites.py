"""
orgs/invites.py -- Fan-out of organisation invites (InviteOrchestrator).

Flow for invite(user_id, organisation_id, emails, manager):
  1. Ownership gate (OwnershipGuard.is_owner) -- not_owner otherwise.
  2. Load the organisation for its display name -- organisation_not_found.
  3. For every address, in input order and without de-duplication: mint an
     invite token, render the HTML body, and hand a MailMessage to the
     transport.

Sends are independent. They run concurrently through asyncio.gather with
return_exceptions=True, so a failure for one address neither stops nor rolls
back any other. Unlike a fire-and-forget broadcast, invite() waits for every
attempt to settle and reports one InviteOutcome per address. The operation
itself succeeds once all attempts have been made, whatever the individual
outcomes; callers inspect InviteReport.failed for per-address errors.

The ownership gate and the organisation lookup are blocking store reads, so
they run on a worker thread via asyncio.to_thread and the event loop stays
free. There is no per-send timeout here beyond whatever the transport applies.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError

from auth.store import CredentialStore
from auth.tokens import TokenService
from core.results import ErrorKind, Result
from mail.content import render_invite_email
from mail.transport import MailMessage, MailTransport
from orgs.guard import OwnershipGuard

logger = logging.getLogger("orgkeeper.orgs.invites")

MSG_FORBIDDEN = "You are forbidden to invite other members"
MSG_NOT_FOUND = "This organisation does not exist"
MSG_FIND_FAILED = "Error finding organisation"
MSG_SEND_FAILED = "Caught error while sending mail!"


@dataclass(frozen=True)
class InviteOutcome:
    email: str
    sent: bool
    error: str | None = None


@dataclass
class InviteReport:
    organisation_id: str
    outcomes: list[InviteOutcome] = field(default_factory=list)

    @property
    def sent(self) -> list[InviteOutcome]:
        return [o for o in self.outcomes if o.sent]

    @property
    def failed(self) -> list[InviteOutcome]:
        return [o for o in self.outcomes if not o.sent]


class InviteOrchestrator:
    """Mint one invite token per address and mail it.

    Usage:
        orchestrator = InviteOrchestrator(store, guard, tokens, transport,
                                          sender="no-reply@example.com",
                                          base_url="https://app.example.com")
        result = await orchestrator.invite(user_id, org_id, ["a@x.com"], manager=False)
        result.get("report").failed
    """

    def __init__(
        self,
        store: CredentialStore,
        guard: OwnershipGuard,
        tokens: TokenService,
        transport: MailTransport,
        sender: str,
        base_url: str,
        subject: str = "[Invite] You are invited",
    ) -> None:
        self._store = store
        self._guard = guard
        self._tokens = tokens
        self._transport = transport
        self._sender = sender
        self._base_url = base_url
        self._subject = subject

    async def invite(self, user_id: str, organisation_id: str, emails: list[str], manager: bool) -> Result:
        if not await asyncio.to_thread(self._guard.is_owner, organisation_id, user_id):
            logger.info("Invite denied for user %s on organisation %s", user_id, organisation_id)
            return Result.fail(ErrorKind.not_owner, MSG_FORBIDDEN)

        try:
            organisation = await asyncio.to_thread(self._store.get_organisation, organisation_id)
        except SQLAlchemyError:
            logger.exception("Organisation lookup failed before invite")
            return Result.fail(ErrorKind.storage_error, MSG_FIND_FAILED)
        if organisation is None:
            return Result.fail(ErrorKind.organisation_not_found, MSG_NOT_FOUND)

        messages = [self._build_message(email, organisation.name, manager, organisation_id) for email in emails]
        settled = await asyncio.gather(
            *(self._transport.send(message) for message in messages),
            return_exceptions=True,
        )

        report = InviteReport(organisation_id=organisation_id)
        for email, outcome in zip(emails, settled):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Invite to %s failed: %s", email, outcome)
                report.outcomes.append(InviteOutcome(email=email, sent=False, error=MSG_SEND_FAILED))
            else:
                report.outcomes.append(InviteOutcome(email=email, sent=True))

        logger.info(
            "Invites for organisation %s: %d sent, %d failed",
            organisation_id,
            len(report.sent),
            len(report.failed),
        )
        return Result.ok(report=report)

    def _build_message(self, email: str, organisation_name: str, manager: bool, organisation_id: str) -> MailMessage:
        token = self._tokens.issue_invite_token(email, manager, organisation_id)
        html = render_invite_email(
            email=email,
            organisation_name=organisation_name,
            manager=manager,
            token=token,
            base_url=self._base_url,
        )
        return MailMessage(sender=self._sender, to=email, subject=self._subject, html_body=html)
