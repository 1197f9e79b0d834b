"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container). Stores and flows do the work.

Layer rule: no imports from api/ or library/.
"""

from __future__ import annotations

from dataclasses import dataclass

# Caller-visible role tags returned by the login/register endpoints. The
# numbers are an opaque client convention and must stay exactly as they are.
ROLE_ADMIN = 1990
ROLE_USER = 2024


@dataclass
class User:
    """An identity in Biblio.

    hashed_password and refresh_token are server-side only. They are never
    copied into a response model.

    refresh_token holds the one currently valid refresh JWT, or None when the
    user has no live session. Issuing a new one overwrites the old value.
    """

    email: str
    first_name: str
    last_name: str
    is_admin: bool = False
    id: int | None = None
    hashed_password: str | None = None
    refresh_token: str | None = None
    created_at: str | None = None

    @property
    def role(self) -> int:
        return ROLE_ADMIN if self.is_admin else ROLE_USER


@dataclass(frozen=True)
class TokenClaims:
    """The identity claim set carried by both access and refresh tokens.

    is_admin must be a real bool. Building claims without it is a programming
    error and fails immediately rather than defaulting to False.
    """

    id: int
    email: str
    is_admin: bool

    def __post_init__(self) -> None:
        if not isinstance(self.is_admin, bool):
            raise TypeError(f"TokenClaims.is_admin must be a bool, got {self.is_admin!r}")

    @classmethod
    def for_user(cls, user: User) -> TokenClaims:
        if user.id is None:
            raise ValueError("Cannot issue a token for a user that has not been saved")
        return cls(id=user.id, email=user.email, is_admin=user.is_admin)
