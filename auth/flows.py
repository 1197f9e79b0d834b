"""
auth/flows.py -- Register, login, refresh and logout.

Each flow is a plain function over a UserStore. Flows never touch HTTP:
they return an AuthResult and the route layer decides how the refresh token
is delivered (the "jwt" cookie) and which status code to use.

Session model: one live refresh token per user, stored on the user row.
  - register/login issue a fresh access + refresh pair and overwrite the
    stored refresh token, which silently ends any previous session.
  - refresh verifies the cookie, then finds the user *by the stored token
    value*, so a token that was validly signed but has since been replaced
    or logged out is rejected with NotFoundError.
  - logout unbinds the stored token.

Timing [C1]: login always runs one bcrypt verification, against a dummy
hash when the email is unknown, so response time does not reveal whether
an account exists. The error message is identical in both cases too.

Layer rule: no imports from api/ or library/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from auth.models import TokenClaims, User
from auth.passwords import hash_password, verify_password
from auth.store import UserStore
from auth.tokens import create_access_token, create_refresh_token, verify_refresh_token
from core.errors import DuplicateEmailError, ForbiddenError, NotFoundError, UnauthorizedError

logger = logging.getLogger("biblio.auth.flows")

_BAD_CREDENTIALS = "Invalid email/password!"

# Computed once at import so the first login attempt is not measurably slower
# than later ones.
_DUMMY_HASH: str = hash_password("biblio_timing_dummy")


@dataclass
class AuthResult:
    """Outcome of a successful flow.

    refresh_token is None for the refresh flow, which does not rotate it.
    """

    user: User
    access_token: str
    refresh_token: str | None = None


def start_session(store: UserStore, user: User) -> AuthResult:
    claims = TokenClaims.for_user(user)
    access = create_access_token(claims)
    refresh = create_refresh_token(claims)
    if not store.save_refresh_token(user.id, refresh):
        raise NotFoundError("No user found!")
    user.refresh_token = refresh
    return AuthResult(user=user, access_token=access, refresh_token=refresh)


def create_user_account(
    store: UserStore,
    *,
    email: str,
    first_name: str,
    last_name: str,
    password: str,
    is_admin: bool = False,
) -> User:
    """Hash the password and insert the user. Raises DuplicateEmailError."""
    if store.get_by_email(email) is not None:
        raise DuplicateEmailError(email)
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        is_admin=is_admin,
        hashed_password=hash_password(password),
    )
    user.id = store.create_user(user)
    return user


def register(
    store: UserStore,
    *,
    email: str,
    first_name: str,
    last_name: str,
    password: str,
    is_admin: bool = False,
) -> AuthResult:
    """Create an account and open its first session."""
    user = create_user_account(
        store,
        email=email,
        first_name=first_name,
        last_name=last_name,
        password=password,
        is_admin=is_admin,
    )
    logger.info("Registered user id=%s admin=%s", user.id, user.is_admin)
    return start_session(store, user)


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization [C1].

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None or user.hashed_password is None:
        # Equalize timing -- do NOT return before running bcrypt [C1]
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def login(store: UserStore, email: str, password: str) -> AuthResult:
    """Authenticate and open a new session, replacing any previous one.

    Unknown email and wrong password both raise the same UnauthorizedError.
    """
    user = authenticate_user(store, email, password)
    if user is None:
        logger.info("Failed login attempt")
        raise UnauthorizedError(_BAD_CREDENTIALS)
    return start_session(store, user)


def refresh(store: UserStore, refresh_token: str | None) -> AuthResult:
    """Exchange the refresh cookie for a new access token.

    Raises:
        UnauthorizedError: no cookie was sent.
        InvalidTokenError: signature or expiry check failed.
        NotFoundError:     no user currently holds this token.
        ForbiddenError:    the token's id claim names a different user than
                           the one holding it.
    """
    if not refresh_token:
        raise UnauthorizedError()
    claims = verify_refresh_token(refresh_token)
    user = store.get_by_refresh_token(refresh_token)
    if user is None:
        logger.info("Refresh rejected: token not bound to any user")
        raise NotFoundError("No user found!")
    if user.id != claims.id:
        logger.warning("Refresh rejected: token claims user %s but is bound to user %s", claims.id, user.id)
        raise ForbiddenError()
    access = create_access_token(TokenClaims.for_user(user))
    return AuthResult(user=user, access_token=access)


def logout(store: UserStore, refresh_token: str | None) -> User | None:
    """End the session bound to refresh_token.

    Returns None when no token was sent (nothing to do), otherwise the user
    whose session was ended. The signature is not checked, so an expired
    token can still be logged out.

    Raises NotFoundError if no user holds the token.
    """
    if not refresh_token:
        return None
    user = store.get_by_refresh_token(refresh_token)
    if user is None:
        raise NotFoundError("No user found!")
    store.clear_refresh_token(user.id)
    user.refresh_token = None
    logger.info("User id=%s logged out", user.id)
    return user
