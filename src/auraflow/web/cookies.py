"""Auth cookies carrying the access and refresh tokens."""

from typing import Any

from fastapi import Response

from auraflow.config import Config
from auraflow.core.modules.token.models import TokenPair

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"


def _cookie_attributes(config: Config) -> dict[str, Any]:
    # Browsers only drop a cookie when the clearing Set-Cookie matches these exactly
    return {
        "path": config.cookie_path,
        "domain": config.cookie_domain,
        "secure": config.secure_cookies,
        "httponly": True,
        "samesite": config.cookie_samesite,
    }


def set_access_cookie(response: Response, access_token: str, config: Config) -> None:
    response.set_cookie(
        ACCESS_COOKIE,
        access_token,
        max_age=int(config.access_token_ttl.total_seconds()),
        **_cookie_attributes(config),
    )


def set_refresh_cookie(response: Response, refresh_token: str, config: Config) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        refresh_token,
        max_age=int(config.refresh_token_ttl.total_seconds()),
        **_cookie_attributes(config),
    )


def set_auth_cookies(response: Response, tokens: TokenPair, config: Config) -> None:
    """Bind the access token, and the refresh token when one was issued."""
    set_access_cookie(response, tokens.access_token, config)
    if tokens.refresh_token is not None:
        set_refresh_cookie(response, tokens.refresh_token, config)


def clear_auth_cookies(response: Response, config: Config) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, **_cookie_attributes(config))
