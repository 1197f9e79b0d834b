"""
auth/permissions.py -- Pure authorization decisions.

Four checks, each a plain function over the request's claims (None for an
anonymous request). They do no I/O. A check either returns normally or
raises the error the route should fail with:

  require_authenticated  -- UnauthorizedError when anonymous
  require_admin          -- ForbiddenError unless isAdmin is exactly True
  require_self_or_admin  -- UnauthorizedError unless admin or the caller's id
                            equals the route's user id
  check_resource_owner   -- ForbiddenError when a found resource belongs to
                            someone else and the caller is not an admin

The FastAPI wiring that feeds request claims into these lives in
auth/dependencies.py.

Layer rule: no imports from api/ or library/.
"""

from __future__ import annotations

from typing import Any

from auth.models import TokenClaims
from core.errors import ForbiddenError, UnauthorizedError


def _is_admin(claims: TokenClaims | None) -> bool:
    # Only a real True counts; a missing or truthy non-bool value does not.
    return claims is not None and claims.is_admin is True


def require_authenticated(claims: TokenClaims | None) -> TokenClaims:
    if claims is None:
        raise UnauthorizedError()
    return claims


def require_admin(claims: TokenClaims | None) -> TokenClaims:
    if not _is_admin(claims):
        raise ForbiddenError()
    return claims


def require_self_or_admin(claims: TokenClaims | None, route_user_id: Any) -> TokenClaims:
    """Admit admins, or the user whose id appears in the route.

    Path parameters arrive as strings, so route_user_id is coerced to int. A
    value that is not an integer never matches.
    """
    if claims is None:
        raise UnauthorizedError()
    if _is_admin(claims):
        return claims
    try:
        target_id = int(route_user_id)
    except (TypeError, ValueError):
        raise UnauthorizedError() from None
    if claims.id != target_id:
        raise UnauthorizedError()
    return claims


def check_resource_owner(resource: Any, caller: TokenClaims) -> None:
    """Reject a caller who neither owns resource nor is an admin.

    resource is anything with an owner_id attribute, or None. None means the
    lookup found nothing; reporting that is the lookup's job, so this check
    does nothing.
    """
    if resource is None:
        return None
    if not _is_admin(caller) and resource.owner_id != caller.id:
        raise ForbiddenError()
    return None
