"""
auth/hashing.py -- One-way password hashing (bcrypt).

Each call to hash() draws a fresh salt. The salt and cost are embedded in the
digest, so verify() needs nothing but the digest itself.

HashService holds only its immutable cost factor and is safe to share across
threads and requests.

Layer rule: no imports from api/, orgs/, or mail/.
"""

from __future__ import annotations

import re

import bcrypt

from core.results import MalformedCredential

_DEFAULT_ROUNDS = 12

# bcrypt reads at most this many bytes of a password.
MAX_PASSWORD_BYTES = 72

_DIGEST_PATTERN = re.compile(r"^\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}$")


def password_fits(plaintext: str) -> bool:
    """Return True if plaintext is within bcrypt's input limit once UTF-8 encoded."""
    return len(plaintext.encode("utf-8")) <= MAX_PASSWORD_BYTES


class HashService:
    """Hash and verify passwords with a configurable bcrypt cost factor.

    Usage:
        hasher = HashService(rounds=12)
        digest = hasher.hash("s3cret")
        hasher.verify("s3cret", digest)   # True
    """

    def __init__(self, rounds: int = _DEFAULT_ROUNDS) -> None:
        self._rounds = rounds

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest of plaintext.

        Raises ValueError when plaintext is longer than MAX_PASSWORD_BYTES.
        Callers check password_fits() first.
        """
        if not password_fits(plaintext):
            raise ValueError(f"Password exceeds {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True if plaintext matches digest, False on mismatch.

        Raises MalformedCredential only when digest is not a bcrypt hash. A
        plaintext too long to have been hashed can never match, so it is a
        mismatch like any other.
        """
        if not isinstance(digest, str) or not _DIGEST_PATTERN.match(digest):
            raise MalformedCredential("Stored password digest is malformed")
        if not password_fits(plaintext):
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError as exc:
            raise MalformedCredential("Stored password digest is malformed") from exc
