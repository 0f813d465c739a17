"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class (pure data container, zero logic). Stores and services
do the work.

Layer rule: no imports from api/, orgs/, or mail/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """An individual identity.

    email is unique across all users and compared as an exact string (no
    trimming, no case folding). password_hash is the bcrypt digest; it never
    leaves the core -- API response models do not carry it.

    id is assigned by core.ids.new_id() before insert and never changes.
    """

    id: str
    email: str
    password_hash: str
    created_at: str | None = None


@dataclass
class Organisation:
    """A tenant. owner_id is the sole source of truth for authorization.

    Only name and description are mutable after setup; owner_id is written
    once and never touched by the update path.
    """

    id: str
    name: str
    owner_id: str
    description: str = ""
    created_at: str | None = None


@dataclass(frozen=True)
class InviteClaims:
    """Decoded contents of a verified invite token."""

    email: str
    manager: bool
    organisation_id: str
