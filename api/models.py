"""
API request and response models for Biblio REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the dataclasses in auth/models.py and library/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire format is camelCase (firstName, isAdmin, ...). Every model uses the
to_camel alias generator; request models also accept snake_case names.
Responses must be dumped with by_alias=True.

The password hash and refresh token never appear in any response model.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import User
from library.models import Collection

# Deliberately loose: one "@", something on both sides, a dot in the domain.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

_REQUEST_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="forbid",
)
_RESPONSE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ---------------------------------------------------------------------------
# Auth / user requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Body for POST /auth/register and POST /users."""

    model_config = _REQUEST_CONFIG

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=6, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=255)
    is_admin: bool = False


class LoginRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class UserPatch(BaseModel):
    """Body for PATCH /users/{id}. Every field optional; at least one required."""

    model_config = _REQUEST_CONFIG

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, min_length=6, max_length=255, pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(default=None, min_length=1, max_length=255)
    is_admin: Optional[bool] = None


# ---------------------------------------------------------------------------
# Auth / user responses
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    id: int
    email: str
    first_name: str
    last_name: str
    is_admin: bool

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Strip a domain User down to its public fields."""
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_admin=user.is_admin,
        )


class AuthResponse(BaseModel):
    """Response for login, register and admin user creation.

    role is 1990 for admins and 2024 otherwise (client convention).
    """

    model_config = _RESPONSE_CONFIG

    role: int
    user: UserResponse
    token: str


class RefreshResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    user: UserResponse
    token: str


class LogoutResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = Field(serialization_alias="Message")


class UserListResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    users: list[UserResponse]


class UserDetailResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    user: UserResponse


class DeletedResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    deleted: str


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class CollectionCreate(BaseModel):
    model_config = _REQUEST_CONFIG

    title: str = Field(min_length=1, max_length=100)
    is_private: bool = False


class CollectionPatch(BaseModel):
    model_config = _REQUEST_CONFIG

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_private: Optional[bool] = None


class CollectionResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    id: int
    title: str
    owner_id: int
    is_private: bool
    created_at: str

    @classmethod
    def from_collection(cls, collection: Collection) -> "CollectionResponse":
        return cls(
            id=collection.id,
            title=collection.title,
            owner_id=collection.owner_id,
            is_private=collection.is_private,
            created_at=collection.created_at,
        )


class CollectionDetailResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    collection: CollectionResponse


class CollectionListResponse(BaseModel):
    model_config = _RESPONSE_CONFIG

    collections: list[CollectionResponse]


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Error payload. status mirrors the HTTP status code."""

    model_config = ConfigDict(frozen=True)

    message: str
    status: int


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    database: str = "ok"
