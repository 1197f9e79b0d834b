"""
api/routes/auth.py -- Session endpoints.

Routes:
  POST /auth/register  -- create account; 201 {role, user, token}; sets "jwt" cookie
  POST /auth/login     -- password login; 200 {role, user, token}; sets "jwt" cookie
  GET  /auth/refresh   -- new access token from the "jwt" cookie; 202 {user, token}
  GET  /auth/logout    -- unbind the refresh token; 200, or 204 with no cookie

All four are public: they are how a client obtains credentials in the first
place.

Handlers are sync (def, not async def). FastAPI runs them in its thread
pool, which keeps bcrypt off the event loop.

Security:
  [H2] POST /auth/login and /auth/register are rate-limited per IP.
  [C1] login goes through auth.flows.login(), which equalizes timing. Do NOT
       inline get_by_email() + verify_password() here.
  [M5] Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import AuthResponse, LoginRequest, LogoutResponse, RefreshResponse, RegisterRequest, UserResponse
from auth import flows
from auth.dependencies import get_user_store
from auth.store import UserStore
from auth.tokens import REFRESH_COOKIE_NAME, clear_refresh_cookie, set_refresh_cookie
from core.config import get_settings

_settings = get_settings()

router = APIRouter()


def _auth_response(result: flows.AuthResult, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            role=result.user.role,
            user=UserResponse.from_user(result.user),
            token=result.access_token,
        ).model_dump(by_alias=True),
    )
    set_refresh_cookie(resp, result.refresh_token)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@limiter.limit(_settings.login_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", status_code=201, response_model=AuthResponse)
def register(
    request: Request,
    body: RegisterRequest,
    store: UserStore = Depends(get_user_store),
) -> JSONResponse:
    """Create an account, open its first session and deliver both tokens.

    Raises DuplicateEmailError (400) if the email is taken.
    """
    result = flows.register(
        store,
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        password=body.password,
        is_admin=body.is_admin,
    )
    return _auth_response(result, status_code=201)


@limiter.limit(_settings.login_rate_limit)  # [H2]
@router.post("/auth/login", response_model=AuthResponse)
def login(
    request: Request,
    body: LoginRequest,
    store: UserStore = Depends(get_user_store),
) -> JSONResponse:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 so the endpoint
    cannot be used to discover which emails are registered.
    """
    result = flows.login(store, body.email, body.password)
    return _auth_response(result, status_code=200)


@router.get("/auth/refresh", status_code=202, response_model=RefreshResponse)
def refresh(request: Request, store: UserStore = Depends(get_user_store)) -> JSONResponse:
    """Issue a new access token for the session bound to the "jwt" cookie."""
    result = flows.refresh(store, request.cookies.get(REFRESH_COOKIE_NAME))
    resp = JSONResponse(
        status_code=202,
        content=RefreshResponse(
            user=UserResponse.from_user(result.user),
            token=result.access_token,
        ).model_dump(by_alias=True),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.get("/auth/logout", response_model=LogoutResponse)
def logout(request: Request, store: UserStore = Depends(get_user_store)) -> Response:
    """End the current session and clear the cookie.

    Without a cookie there is nothing to end; respond 204 so repeated
    logouts are harmless.
    """
    user = flows.logout(store, request.cookies.get(REFRESH_COOKIE_NAME))
    if user is None:
        return Response(status_code=204)
    resp = JSONResponse(
        content=LogoutResponse(message=f"User number {user.id} logged out successfully!").model_dump(by_alias=True),
    )
    clear_refresh_cookie(resp)
    return resp
