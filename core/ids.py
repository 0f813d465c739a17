"""
core/ids.py -- Opaque identifier generation for new records.

Short, lowercase, URL-safe ids. 10 characters from a 36-symbol alphabet is
roughly 51 bits, plenty for user and organisation keys; the database UNIQUE
/ PRIMARY KEY constraints catch the astronomically rare collision.
"""

import secrets
import string

_ALPHABET = string.ascii_lowercase + string.digits
_ID_LENGTH = 10


def new_id() -> str:
    """Return a new random identifier, e.g. 'k3x9q0m2ab'."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(_ID_LENGTH))
