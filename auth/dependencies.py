"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

authenticate_jwt() is the session layer. It is registered as an app-wide
dependency in api/main.py, so it runs for every routed request:

  - no (or empty) Authorization header -> anonymous, request.state.user = None
  - "Bearer <token>" header  -> token verified, request.state.user = TokenClaims
  - header present but token invalid or expired -> InvalidTokenError (401)

A present-but-bad token is an error on purpose; only a missing token is
treated as anonymous, and an empty header counts as missing.
authenticate_jwt() never rejects a request for lacking credentials -- that
is what the per-route dependencies below are for.

Per-route dependencies wrap the pure checks in auth/permissions.py:
  get_current_user()  -- RequireAuthenticated
  require_admin_user() -- RequireAuthenticated + RequireAdmin
  require_self_or_admin_user() -- RequireSelfOrAdmin against the {user_id}
                                  path parameter

FastAPI caches dependency results per request, so authenticate_jwt() runs
once even though every route dependency also depends on it.
"""

from __future__ import annotations

import re

from fastapi import Depends, Request

from auth.models import TokenClaims
from auth.permissions import require_admin, require_authenticated, require_self_or_admin
from auth.store import UserStore
from auth.tokens import verify_access_token

_BEARER_PREFIX = re.compile(r"^[Bb]earer ")


def authenticate_jwt(request: Request) -> TokenClaims | None:
    """Attach verified access-token claims to request.state.user.

    Returns the claims (or None when anonymous) so other dependencies can
    declare Depends(authenticate_jwt) and receive them directly.
    """
    request.state.user = None
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    token = _BEARER_PREFIX.sub("", auth_header).strip()
    claims = verify_access_token(token)
    request.state.user = claims
    return claims


def get_current_user(claims: TokenClaims | None = Depends(authenticate_jwt)) -> TokenClaims:
    """Require authentication. Raises UnauthorizedError (401) when anonymous.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: TokenClaims = Depends(get_current_user)): ...
    """
    return require_authenticated(claims)


def require_admin_user(claims: TokenClaims = Depends(get_current_user)) -> TokenClaims:
    """Require an admin. 401 if anonymous, 403 if authenticated but not admin."""
    return require_admin(claims)


def require_self_or_admin_user(
    user_id: str,
    claims: TokenClaims | None = Depends(authenticate_jwt),
) -> TokenClaims:
    """Require the caller to be the {user_id} in the path, or an admin.

    user_id is taken as the raw path string; the policy does the numeric
    coercion.
    """
    return require_self_or_admin(claims, user_id)


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store
