"""
auth/tokens.py -- JWT issuance/verification and refresh cookie helpers.

Security design decisions:
  JWT: python-jose with HS256. Two token classes, two secrets:
       access  -- ACCESS_TOKEN_SECRET, 5 minute expiry, sent as a Bearer header.
       refresh -- REFRESH_TOKEN_SECRET, 1 day expiry, sent as the httpOnly
                  "jwt" cookie and persisted on the user row.
       Compromise of one secret cannot forge the other token class.

  Payload: {"id", "email", "isAdmin", "iat", "exp", "jti"}. The camelCase key
       is the wire format existing clients decode; keep it.
       jti is random per token. Two logins in the same second must still bind
       different refresh tokens, or a logged-out cookie could come back to life.

  Verification raises InvalidTokenError for every failure mode (bad
       signature, expired, malformed, missing claim). Callers cannot tell the
       cases apart and do not need to.

Layer rule: no imports from api/ or library/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import get_settings
from core.errors import InvalidTokenError

_settings = get_settings()

_ALGORITHM = "HS256"

REFRESH_COOKIE_NAME = "jwt"

# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def _sign(claims: TokenClaims, secret: str, expire_seconds: int) -> str:
    if not isinstance(claims, TokenClaims):
        raise TypeError(f"Tokens are issued from TokenClaims, got {type(claims).__name__}")
    now = datetime.now(timezone.utc)
    payload = {
        "id": claims.id,
        "email": claims.email,
        "isAdmin": claims.is_admin,
        "iat": now,
        "exp": now + timedelta(seconds=expire_seconds),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(payload, secret, algorithm=_ALGORITHM)


def create_access_token(claims: TokenClaims, expire_seconds: int = 0) -> str:
    """Sign a short-lived access token for the given identity.

    Args:
        claims:         Identity to embed. Must be TokenClaims; anything else
                        (including a dict without isAdmin) is a TypeError.
        expire_seconds: Override for Settings.access_token_expire_seconds.
                        0 (default) uses the configured value.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.access_token_expire_seconds
    return _sign(claims, _settings.access_token_secret, duration)


def create_refresh_token(claims: TokenClaims, expire_seconds: int = 0) -> str:
    """Sign a long-lived refresh token with the refresh secret."""
    duration = expire_seconds if expire_seconds > 0 else _settings.refresh_token_expire_seconds
    return _sign(claims, _settings.refresh_token_secret, duration)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def _verify(token: str, secret: str) -> TokenClaims:
    try:
        payload = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError() from exc

    user_id = payload.get("id")
    email = payload.get("email")
    is_admin = payload.get("isAdmin")
    # bool is a subclass of int, so rule it out explicitly for id.
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise InvalidTokenError()
    if not isinstance(email, str) or not isinstance(is_admin, bool):
        raise InvalidTokenError()
    return TokenClaims(id=user_id, email=email, is_admin=is_admin)


def verify_access_token(token: str) -> TokenClaims:
    """Verify an access token. Raises InvalidTokenError on any failure."""
    return _verify(token, _settings.access_token_secret)


def verify_refresh_token(token: str) -> TokenClaims:
    """Verify a refresh token. Raises InvalidTokenError on any failure."""
    return _verify(token, _settings.refresh_token_secret)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_refresh_cookie(response, token: str) -> None:
    """Write the refresh token as the httpOnly "jwt" cookie.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POSTs.
    secure: only over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the refresh token expiry so both lapse together.
    """
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.refresh_token_expire_seconds,
    )


def clear_refresh_cookie(response) -> None:
    response.delete_cookie(
        REFRESH_COOKIE_NAME,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
    )
