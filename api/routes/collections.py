"""
api/routes/collections.py -- Book collection endpoints.

Routes:
  POST   /collections            -- create (requires auth; owner = caller)
  GET    /collections/public     -- all public collections (requires auth)
  GET    /collections/user/{id}  -- every collection of one user (self or admin)
  GET    /collections/{id}       -- one collection (owner or admin)
  PATCH  /collections/{id}       -- edit (owner or admin)
  DELETE /collections/{id}       -- delete (owner or admin)

Ownership: single-collection routes look the record up first (404 when
missing) and then run check_resource_owner() (403 when the caller neither
owns it nor is an admin). The owner is always taken from the token, never
from the request body.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from api.models import (
    CollectionCreate,
    CollectionDetailResponse,
    CollectionListResponse,
    CollectionPatch,
    CollectionResponse,
    DeletedResponse,
)
from auth.dependencies import get_current_user, require_self_or_admin_user
from auth.models import TokenClaims
from auth.permissions import check_resource_owner
from core.errors import BadRequestError, NotFoundError
from library.models import Collection
from library.store import CollectionStore

router = APIRouter()


def get_collection_store(request: Request) -> CollectionStore:
    return request.app.state.collection_store


def _get_owned_collection(store: CollectionStore, collection_id: int, caller: TokenClaims) -> Collection:
    collection = store.get_collection(collection_id)
    if collection is None:
        raise NotFoundError("No collection found!")
    check_resource_owner(collection, caller)
    return collection


@router.post("/collections", status_code=201, response_model=CollectionDetailResponse)
def create_collection(
    body: CollectionCreate,
    store: CollectionStore = Depends(get_collection_store),
    current_user: TokenClaims = Depends(get_current_user),
) -> CollectionDetailResponse:
    collection_id = store.create_collection(
        Collection(owner_id=current_user.id, title=body.title, is_private=body.is_private)
    )
    return CollectionDetailResponse(collection=CollectionResponse.from_collection(store.get_collection(collection_id)))


# /public must be registered before /{collection_id} or it would be parsed as an id.
@router.get("/collections/public", response_model=CollectionListResponse)
def list_public_collections(
    store: CollectionStore = Depends(get_collection_store),
    current_user: TokenClaims = Depends(get_current_user),
) -> CollectionListResponse:
    return CollectionListResponse(collections=[CollectionResponse.from_collection(c) for c in store.list_public()])


@router.get("/collections/user/{user_id}", response_model=CollectionListResponse)
def list_user_collections(
    user_id: int,
    store: CollectionStore = Depends(get_collection_store),
    caller: TokenClaims = Depends(require_self_or_admin_user),
) -> CollectionListResponse:
    return CollectionListResponse(
        collections=[CollectionResponse.from_collection(c) for c in store.list_for_owner(user_id)]
    )


@router.get("/collections/{collection_id}", response_model=CollectionDetailResponse)
def get_collection(
    collection_id: int,
    store: CollectionStore = Depends(get_collection_store),
    current_user: TokenClaims = Depends(get_current_user),
) -> CollectionDetailResponse:
    collection = _get_owned_collection(store, collection_id, current_user)
    return CollectionDetailResponse(collection=CollectionResponse.from_collection(collection))


@router.patch("/collections/{collection_id}", response_model=CollectionDetailResponse)
def update_collection(
    collection_id: int,
    body: CollectionPatch,
    store: CollectionStore = Depends(get_collection_store),
    current_user: TokenClaims = Depends(get_current_user),
) -> CollectionDetailResponse:
    _get_owned_collection(store, collection_id, current_user)
    updates = body.model_dump(exclude_none=True)
    if not updates:
        raise BadRequestError("No fields to update.")
    updated = store.get_collection(collection_id) if store.update_collection(collection_id, **updates) else None
    if updated is None:
        raise NotFoundError("No collection found!")
    return CollectionDetailResponse(collection=CollectionResponse.from_collection(updated))


@router.delete("/collections/{collection_id}", response_model=DeletedResponse)
def delete_collection(
    collection_id: int,
    store: CollectionStore = Depends(get_collection_store),
    current_user: TokenClaims = Depends(get_current_user),
) -> DeletedResponse:
    _get_owned_collection(store, collection_id, current_user)
    store.delete_collection(collection_id)
    return DeletedResponse(deleted=f"Collection id: {collection_id}")
