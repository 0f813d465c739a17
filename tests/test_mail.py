"""Unit tests for mail/content.py and mail/transport.py.

SMTP is never contacted: smtplib.SMTP / SMTP_SSL are patched with MagicMocks
that behave as context managers.
"""

import asyncio
import smtplib
from unittest.mock import MagicMock, patch

import pytest

from core.results import MailDeliveryError
from mail.content import invite_link, render_invite_email
from mail.transport import MailMessage, SmtpConfig, SmtpMailTransport


MESSAGE = MailMessage(sender="no-reply@acme.test", to="a@x.com", subject="Hi", html_body="<p>Hi</p>")


class TestInviteContent:
    def test_link(self):
        assert invite_link("https://app.test/", "abc.def") == "https://app.test/invite?token=abc.def"

    def test_render_member(self):
        html = render_invite_email("a@x.com", "Acme", False, "tok", "https://app.test")
        assert "Acme" in html
        assert "a@x.com" in html
        assert "as a member" in html
        assert 'href="https://app.test/invite?token=tok"' in html

    def test_render_manager(self):
        html = render_invite_email("a@x.com", "Acme", True, "tok", "https://app.test")
        assert "as a manager" in html

    def test_organisation_name_is_escaped(self):
        html = render_invite_email("a@x.com", "<b>Acme</b>", False, "tok", "https://app.test")
        assert "<b>Acme</b>" not in html
        assert "&lt;b&gt;Acme&lt;/b&gt;" in html


def _smtp_mock() -> MagicMock:
    server = MagicMock()
    factory = MagicMock()
    factory.return_value.__enter__.return_value = server
    factory.return_value.__exit__.return_value = False
    return factory


class TestSmtpMailTransport:
    def test_starttls_and_login(self):
        factory = _smtp_mock()
        transport = SmtpMailTransport(SmtpConfig(host="smtp.test", username="u", password="p"))
        with patch("mail.transport.smtplib.SMTP", factory):
            asyncio.run(transport.send(MESSAGE))

        factory.assert_called_once_with("smtp.test", 587, timeout=15.0)
        server = factory.return_value.__enter__.return_value
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("u", "p")
        sent = server.send_message.call_args.args[0]
        assert sent["To"] == "a@x.com"
        assert sent["From"] == "no-reply@acme.test"
        assert sent["Subject"] == "Hi"

    def test_no_login_without_credentials(self):
        factory = _smtp_mock()
        with patch("mail.transport.smtplib.SMTP", factory):
            asyncio.run(SmtpMailTransport(SmtpConfig(host="smtp.test")).send(MESSAGE))
        factory.return_value.__enter__.return_value.login.assert_not_called()

    def test_implicit_tls(self):
        factory = _smtp_mock()
        with patch("mail.transport.smtplib.SMTP_SSL", factory):
            asyncio.run(SmtpMailTransport(SmtpConfig(host="smtp.test", port=465, use_tls=False)).send(MESSAGE))
        factory.return_value.__enter__.return_value.send_message.assert_called_once()

    @pytest.mark.parametrize(
        "error",
        [smtplib.SMTPRecipientsRefused({"a@x.com": (550, b"no")}), ConnectionRefusedError("refused")],
    )
    def test_failures_become_mail_delivery_error(self, error):
        factory = _smtp_mock()
        factory.return_value.__enter__.return_value.send_message.side_effect = error
        with patch("mail.transport.smtplib.SMTP", factory):
            with pytest.raises(MailDeliveryError) as exc_info:
                asyncio.run(SmtpMailTransport(SmtpConfig(host="smtp.test")).send(MESSAGE))
        assert isinstance(exc_info.value.__cause__, type(error))
