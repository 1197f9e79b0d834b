"""
auth/passwords.py -- bcrypt password hashing.

bcrypt is used directly (no passlib wrapper). The cost factor comes from
Settings.bcrypt_work_factor unless a caller passes one explicitly; the test
environment pins it to 4 so fixtures that create many users stay fast.

bcrypt only looks at the first 72 bytes of its input and current releases
raise on anything longer, so input is truncated to 72 bytes on both the hash
and the verify side.

Layer rule: no imports from api/ or library/. Import from core/ is allowed.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings
from core.errors import PasswordHashError

_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str, work_factor: int | None = None) -> str:
    """Return a salted bcrypt hash of the plaintext password."""
    rounds = work_factor if work_factor is not None else get_settings().bcrypt_work_factor
    return bcrypt.hashpw(_encode(plain), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the stored hash.

    A mismatch returns False. A stored value that is not a bcrypt hash raises
    PasswordHashError: that is corrupt data, not a failed login.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except ValueError as exc:
        raise PasswordHashError() from exc
