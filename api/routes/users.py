"""
api/routes/users.py -- User management endpoints.

Routes:
  POST   /users       -- create a user (admin only); 201 {role, user, token}
  GET    /users       -- list users (requires auth)
  GET    /users/{id}  -- one user (requires auth)
  PATCH  /users/{id}  -- partial profile update (self or admin)
  DELETE /users/{id}  -- delete account (self or admin)

Privilege rule on PATCH: only an admin caller may send isAdmin. A regular
user editing their own profile with isAdmin in the body gets 403, even if
the value would not change anything. This closes the self-elevation path
that a shared profile/role payload would otherwise open.

Deleting a user also removes that user's collections, and the refresh token
is cleared in the same transaction as the row delete (UserStore.delete_user).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.models import (
    AuthResponse,
    DeletedResponse,
    RegisterRequest,
    UserDetailResponse,
    UserListResponse,
    UserPatch,
    UserResponse,
)
from api.routes.collections import get_collection_store
from auth import flows
from auth.dependencies import get_current_user, get_user_store, require_admin_user, require_self_or_admin_user
from auth.models import TokenClaims
from auth.passwords import hash_password
from auth.permissions import require_admin
from auth.store import UserStore
from core.errors import BadRequestError, NotFoundError
from library.store import CollectionStore

logger = logging.getLogger("biblio.api.users")

router = APIRouter()


@router.post("/users", status_code=201, response_model=AuthResponse)
def create_user(
    body: RegisterRequest,
    store: UserStore = Depends(get_user_store),
    admin: TokenClaims = Depends(require_admin_user),
) -> JSONResponse:
    """Create an account on someone's behalf. Admin only.

    The new user's session is opened (refresh token stored) but the cookie is
    not set -- it would belong to the admin's browser, not the new user's.
    """
    user = flows.create_user_account(
        store,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        password=body.password,
        is_admin=body.is_admin,
    )
    result = flows.start_session(store, user)
    logger.info("Admin id=%s created user id=%s", admin.id, user.id)
    return JSONResponse(
        status_code=201,
        content=AuthResponse(
            role=user.role,
            user=UserResponse.from_user(user),
            token=result.access_token,
        ).model_dump(by_alias=True),
    )


@router.get("/users", response_model=UserListResponse)
def list_users(
    store: UserStore = Depends(get_user_store),
    current_user: TokenClaims = Depends(get_current_user),
) -> UserListResponse:
    return UserListResponse(users=[UserResponse.from_user(u) for u in store.list_users()])


@router.get("/users/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: int,
    store: UserStore = Depends(get_user_store),
    current_user: TokenClaims = Depends(get_current_user),
) -> UserDetailResponse:
    user = store.get_by_id(user_id)
    if user is None:
        raise NotFoundError("No user found!")
    return UserDetailResponse(user=UserResponse.from_user(user))


@router.patch("/users/{user_id}", response_model=UserDetailResponse)
def update_user(
    user_id: int,
    body: UserPatch,
    store: UserStore = Depends(get_user_store),
    caller: TokenClaims = Depends(require_self_or_admin_user),
) -> UserDetailResponse:
    """Partially update a profile. Passwords are re-hashed before storage."""
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise BadRequestError("No fields to update.")
    if "is_admin" in updates:
        require_admin(caller)
    if "password" in updates:
        updates["hashed_password"] = hash_password(updates.pop("password"))

    updated = store.get_by_id(user_id) if store.update_user(user_id, **updates) else None
    # Re-read can miss if a concurrent DELETE lands between the two queries.
    if updated is None:
        raise NotFoundError("No user found!")
    return UserDetailResponse(user=UserResponse.from_user(updated))


@router.delete("/users/{user_id}", response_model=DeletedResponse)
def delete_user(
    user_id: int,
    store: UserStore = Depends(get_user_store),
    collections: CollectionStore = Depends(get_collection_store),
    caller: TokenClaims = Depends(require_self_or_admin_user),
) -> DeletedResponse:
    if not store.delete_user(user_id):
        raise NotFoundError("No user found!")
    removed = collections.delete_for_owner(user_id)
    logger.info("User id=%s deleted by id=%s (%d collections removed)", user_id, caller.id, removed)
    return DeletedResponse(deleted=f"User number {user_id}")
