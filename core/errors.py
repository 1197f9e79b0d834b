"""
core/errors.py -- Error taxonomy shared by every layer.

Each error carries the HTTP status it maps to. The top-level handler in
api/main.py turns any BiblioError into the {"error": {"message", "status"}}
envelope, so stores, flows and policy checks raise these directly instead of
building responses.

Layer rule: core/ is the kernel. No imports from api/, auth/ or library/.
"""

from __future__ import annotations


class BiblioError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, status: int | None = None) -> None:
        self.message = message or self.default_message
        if status is not None:
            self.status = status
        super().__init__(self.message)


class BadRequestError(BiblioError):
    status = 400
    default_message = "Bad Request"


class DuplicateEmailError(BadRequestError):
    """Raised when an email address is already bound to another identity."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Duplicate email: {email}")
        self.email = email


class UnauthorizedError(BiblioError):
    status = 401
    default_message = "Unauthorized"


class InvalidTokenError(UnauthorizedError):
    """Signature, expiry or payload-shape failure on a JWT.

    All verification failures collapse to this one kind; callers never learn
    which check failed.
    """

    default_message = "Invalid or expired token"


class ForbiddenError(BiblioError):
    status = 403
    default_message = "Forbidden"


class NotFoundError(BiblioError):
    status = 404
    default_message = "Not Found"


class PasswordHashError(BiblioError):
    """A stored password hash could not be parsed.

    This is a data/configuration fault, never a user error.
    """

    default_message = "Stored password hash is malformed"
