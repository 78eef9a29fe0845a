"""Tests for auth cookie binding."""

from fastapi import Response

from auraflow.config import Config
from auraflow.core.modules.token.models import TokenPair
from auraflow.web.cookies import clear_auth_cookies, set_access_cookie, set_auth_cookies


def _cookies(response: Response) -> dict[str, str]:
    """Map cookie name to its full Set-Cookie header."""
    headers = [value for key, value in response.raw_headers if key == b"set-cookie"]
    return {h.decode().split("=", 1)[0]: h.decode() for h in headers}


def _attributes(header: str) -> set[str]:
    return {part.strip().lower() for part in header.split(";")[1:]}


def _production_config(config: Config, **overrides: object) -> Config:
    return config.model_copy(update={"debug": False, **overrides})


def test_sets_both_cookies_with_independent_lifetimes(config):
    """Test that each cookie lives as long as its token."""
    response = Response()
    set_auth_cookies(response, TokenPair(access_token="a", refresh_token="r", expires_in=900), config)

    cookies = _cookies(response)
    assert cookies["access_token"].startswith("access_token=a;")
    assert cookies["refresh_token"].startswith("refresh_token=r;")
    assert "max-age=900" in _attributes(cookies["access_token"])
    assert "max-age=604800" in _attributes(cookies["refresh_token"])


def test_cookies_are_http_only_and_strict_by_default(config):
    """Test the default cookie flags."""
    response = Response()
    set_auth_cookies(response, TokenPair(access_token="a", refresh_token="r", expires_in=900), config)

    for header in _cookies(response).values():
        attributes = _attributes(header)
        assert "httponly" in attributes
        assert "samesite=strict" in attributes
        assert "path=/" in attributes


def test_secure_outside_debug(config):
    """Test that cookies are secure outside debug mode."""
    response = Response()
    set_access_cookie(response, "a", _production_config(config))

    assert "secure" in _attributes(_cookies(response)["access_token"])


def test_not_secure_in_debug(config):
    """Test that cookies are not secure in debug mode."""
    response = Response()
    set_access_cookie(response, "a", config)

    assert "secure" not in _attributes(_cookies(response)["access_token"])


def test_access_only_pair_leaves_refresh_cookie_alone(config):
    """Test that a pair without refresh token sets the access cookie only."""
    response = Response()
    set_auth_cookies(response, TokenPair(access_token="a", expires_in=900), config)

    assert set(_cookies(response)) == {"access_token"}


def test_clearing_matches_setting_attributes(config):
    """Browsers keep a cookie unless the clearing header repeats its path, domain and flags."""
    config = _production_config(config, cookie_samesite="lax", cookie_path="/api", cookie_domain="auraflow.app")
    set_response = Response()
    set_auth_cookies(set_response, TokenPair(access_token="a", refresh_token="r", expires_in=900), config)
    clear_response = Response()
    clear_auth_cookies(clear_response, config)

    set_cookies = _cookies(set_response)
    cleared = _cookies(clear_response)
    assert set(cleared) == {"access_token", "refresh_token"}
    for name, header in cleared.items():
        set_attributes = {a for a in _attributes(set_cookies[name]) if not a.startswith(("max-age", "expires"))}
        clear_attributes = {a for a in _attributes(header) if not a.startswith(("max-age", "expires"))}
        assert clear_attributes == set_attributes
        assert "max-age=0" in _attributes(header)
        assert {"path=/api", "domain=auraflow.app", "samesite=lax", "secure", "httponly"} <= clear_attributes
