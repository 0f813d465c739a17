"""
mail/transport.py -- Outbound mail delivery.

MailTransport is the seam the invite flow depends on: one async send() per
message, raising MailDeliveryError when the message could not be handed to
the relay. Each call fails independently; a transport never batches.

SmtpMailTransport talks to an SMTP relay with smtplib (STARTTLS on 587 by
default, implicit TLS when use_tls is False). smtplib is blocking, so each
send runs on a worker thread via asyncio.to_thread and the event loop stays
free while several invites are in flight. The only timeout is the socket
timeout handed to smtplib; there is no cancellation beyond that.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from core.results import MailDeliveryError

logger = logging.getLogger("orgkeeper.mail")


@dataclass(frozen=True)
class MailMessage:
    sender: str
    to: str
    subject: str
    html_body: str


@dataclass(frozen=True)
class SmtpConfig:
    """SMTP relay configuration."""

    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    timeout_seconds: float = 15.0


class MailTransport(Protocol):
    async def send(self, message: MailMessage) -> None: ...


class SmtpMailTransport:
    """Deliver MailMessages through an SMTP relay."""

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    async def send(self, message: MailMessage) -> None:
        await asyncio.to_thread(self._send_sync, message)

    def _send_sync(self, message: MailMessage) -> None:
        cfg = self._config
        msg = _build_email_message(message)
        try:
            context = ssl.create_default_context()
            if cfg.use_tls:
                with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout_seconds) as server:
                    server.ehlo()
                    server.starttls(context=context)
                    server.ehlo()
                    if cfg.username and cfg.password:
                        server.login(cfg.username, cfg.password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP_SSL(cfg.host, cfg.port, context=context, timeout=cfg.timeout_seconds) as server:
                    if cfg.username and cfg.password:
                        server.login(cfg.username, cfg.password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP send failed for %s: %s", message.to, exc)
            raise MailDeliveryError("Failed to send email via SMTP") from exc
        logger.debug("Mail sent to %s", message.to)


def _build_email_message(message: MailMessage) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = message.subject
    msg["From"] = message.sender
    msg["To"] = message.to
    # Plain-text part for clients that refuse HTML.
    msg.set_content("This message requires an HTML-capable mail client.")
    msg.add_alternative(message.html_body, subtype="html")
    return msg
