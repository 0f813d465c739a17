"""
mail/content.py -- HTML body for invite emails.

render_invite_email() is a pure function of its arguments: no I/O beyond
loading the packaged template once, no side effects. Jinja2 autoescape is on,
so an organisation name like "<b>Acme</b>" renders as text.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlencode

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

_env = Environment(
    loader=FileSystemLoader(str(Path(__file__).parent / "templates")),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
)


def invite_link(base_url: str, token: str) -> str:
    """Return the frontend URL that accepts an invite token."""
    return f"{base_url.rstrip('/')}/invite?{urlencode({'token': token})}"


def render_invite_email(email: str, organisation_name: str, manager: bool, token: str, base_url: str) -> str:
    template = _env.get_template("invite.html")
    return template.render(
        email=email,
        organisation_name=organisation_name,
        role="manager" if manager else "member",
        link=invite_link(base_url, token),
    )
