from collections.abc import Awaitable, Callable
from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from auraflow.app import App
from auraflow.config import Config
from auraflow.core.modules.token.models import TokenClaims
from auraflow.errors import AuthenticationError
from auraflow.web.cookies import ACCESS_COOKIE, REFRESH_COOKIE

# Security schemes
bearer_scheme = HTTPBearer(
    scheme_name="BearerAuth",
    description="Access token in the Authorization header (preferred)",
    auto_error=False,
)
access_cookie_scheme = APIKeyCookie(
    name=ACCESS_COOKIE,
    scheme_name="AccessTokenCookie",
    description="Access token stored in an http-only cookie",
    auto_error=False,
)
refresh_cookie_scheme = APIKeyCookie(
    name=REFRESH_COOKIE,
    scheme_name="RefreshTokenCookie",
    description="Refresh token stored in an http-only cookie",
    auto_error=False,
)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_current_claims(
    app: Annotated[App, Depends(get_app)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    token_cookie: Annotated[str | None, Depends(access_cookie_scheme)] = None,
) -> TokenClaims:
    """Verify the access token from the Authorization Bearer header or cookie."""

    # Bearer header wins when present
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return app.authenticate(credentials.credentials)

    if token_cookie:
        return app.authenticate(token_cookie)

    raise AuthenticationError("Missing access token")


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ConfigDep = Annotated[Config, Depends(get_config)]
ClaimsDep = Annotated[TokenClaims, Depends(get_current_claims)]
RefreshCookieDep = Annotated[str | None, Depends(refresh_cookie_scheme)]


def rate_limited(scope: str) -> Callable[..., Awaitable[None]]:
    """Dependency counting each request of a client address against a rate limit scope."""

    async def check_rate_limit(request: Request, app: AppDep) -> None:
        client = request.client.host if request.client else "unknown"
        await app.check_rate_limit(scope, client)

    return check_rate_limit
