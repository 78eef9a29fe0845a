from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from auraflow.core.modules.ratelimit.limiter import LOGIN_SCOPE, REGISTER_SCOPE
from auraflow.core.modules.token.models import TokenPair
from auraflow.core.modules.user.models import UserView
from auraflow.errors import AuthenticationError
from auraflow.web.cookies import clear_auth_cookies, set_access_cookie, set_auth_cookies
from auraflow.web.deps import AppDep, ClaimsDep, ConfigDep, RefreshCookieDep, rate_limited
from auraflow.web.openapi import ErrorResponse, RateLimitResponse

router = APIRouter(tags=["auth"])


class RegisterRequest(BaseModel):
    """Account registration request."""

    email: str = Field(..., description="Email address, used as login")
    password: str = Field(..., min_length=1, description="Password, at least 6 characters")
    name: str | None = Field(None, description="Display name, defaults to the email local part")


class LoginRequest(BaseModel):
    """Authentication request."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class RefreshRequest(BaseModel):
    """Refresh token for clients that cannot use cookies."""

    refresh_token: str | None = Field(None, description="Refresh token; the refresh_token cookie is used when omitted")


class AuthResponse(BaseModel):
    """Authenticated user and freshly issued tokens."""

    user: UserView
    tokens: TokenPair


class LogoutResponse(BaseModel):
    status: str = "logged_out"


def _resolve_refresh_token(body: RefreshRequest | None, cookie: str | None) -> str:
    token = (body.refresh_token if body else None) or cookie
    if not token:
        raise AuthenticationError("Missing refresh token")
    return token


async def _read_refresh_token(request: Request) -> str | None:
    """Refresh token from a JSON body, None when the body is missing, malformed or mistyped."""
    try:
        payload: Any = await request.json()
    except ValueError:
        return None
    token = payload.get("refresh_token") if isinstance(payload, dict) else None
    return token if isinstance(token, str) else None


@router.post(
    "/auth/register",
    summary="Create account",
    description="Create an account and sign in. Tokens are returned and set as http-only cookies.",
    operation_id="register",
    status_code=201,
    dependencies=[Depends(rate_limited(REGISTER_SCOPE))],
    responses={
        201: {"description": "Account created"},
        400: {"model": ErrorResponse, "description": "Invalid email, password or name"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        429: {"model": RateLimitResponse, "description": "Too many registration attempts"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
)
async def register(request: RegisterRequest, app: AppDep, config: ConfigDep, response: Response) -> AuthResponse:
    user, tokens = await app.register(request.email, request.password, request.name)
    set_auth_cookies(response, tokens, config)
    return AuthResponse(user=user, tokens=tokens)


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description="Authenticate with email and password to receive an access/refresh token pair.",
    operation_id="login",
    dependencies=[Depends(rate_limited(LOGIN_SCOPE))],
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        429: {"model": RateLimitResponse, "description": "Too many login attempts"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
)
async def login(login_data: LoginRequest, app: AppDep, config: ConfigDep, response: Response) -> AuthResponse:
    """Authenticate user and create session."""
    user, tokens = await app.login(login_data.email, login_data.password)
    set_auth_cookies(response, tokens, config)
    return AuthResponse(user=user, tokens=tokens)


@router.post(
    "/auth/refresh",
    summary="Refresh access token",
    description="Issue a new access token. The refresh token and its session are unchanged.",
    operation_id="refreshAccessToken",
    responses={
        200: {"description": "New access token"},
        401: {"model": ErrorResponse, "description": "Refresh token invalid, expired or revoked"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
)
async def refresh(
    app: AppDep,
    config: ConfigDep,
    response: Response,
    refresh_cookie: RefreshCookieDep,
    body: RefreshRequest | None = None,
) -> TokenPair:
    tokens = await app.refresh_access(_resolve_refresh_token(body, refresh_cookie))
    set_access_cookie(response, tokens.access_token, config)
    return tokens


@router.post(
    "/auth/rotate",
    summary="Rotate refresh token",
    description="Exchange the refresh token for a new access/refresh pair. The old refresh token stops working.",
    operation_id="rotateRefreshToken",
    responses={
        200: {"description": "New token pair"},
        401: {"model": ErrorResponse, "description": "Refresh token invalid, expired or revoked"},
        503: {"model": ErrorResponse, "description": "Storage unavailable"},
    },
)
async def rotate(
    app: AppDep,
    config: ConfigDep,
    response: Response,
    refresh_cookie: RefreshCookieDep,
    body: RefreshRequest | None = None,
) -> TokenPair:
    tokens = await app.rotate_refresh(_resolve_refresh_token(body, refresh_cookie))
    set_auth_cookies(response, tokens, config)
    return tokens


@router.post(
    "/auth/logout",
    summary="End session",
    description="Revoke the session behind the refresh token and clear auth cookies. Always succeeds.",
    operation_id="logout",
    responses={200: {"description": "Logged out"}},
    openapi_extra={
        "requestBody": {
            "required": False,
            "content": {"application/json": {"schema": RefreshRequest.model_json_schema()}},
        }
    },
)
async def logout(
    request: Request,
    app: AppDep,
    config: ConfigDep,
    response: Response,
    refresh_cookie: RefreshCookieDep,
) -> LogoutResponse:
    # A malformed body is ignored; cookies are cleared regardless
    await app.logout(await _read_refresh_token(request) or refresh_cookie)
    clear_auth_cookies(response, config)
    return LogoutResponse()


@router.get(
    "/auth/me",
    summary="Get current user",
    description="Get the profile of the user the access token belongs to.",
    operation_id="getCurrentUser",
    responses={
        200: {"description": "Current user"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def me(app: AppDep, claims: ClaimsDep) -> UserView:
    return await app.get_current_user(claims)
