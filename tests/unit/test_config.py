"""Tests for configuration loading."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from auraflow.config import Config

BASE = {
    "database_url": "mongodb://localhost:27017/auraflow",
    "access_token_secret": "access",
    "refresh_token_secret": "refresh",
}


def test_defaults():
    """Test the default settings."""
    config = Config(**BASE)

    assert config.access_token_ttl == timedelta(minutes=15)
    assert config.refresh_token_ttl == timedelta(days=7)
    assert config.cookie_samesite == "strict"
    assert config.bcrypt_rounds == 12
    assert config.session_purge_interval_seconds == 3600
    assert config.token_leeway == timedelta(0)
    assert config.rate_limit_enabled is True
    assert (config.login_attempts_limit, config.login_attempts_window_minutes) == (5, 15)
    assert (config.register_attempts_limit, config.register_attempts_window_minutes) == (3, 60)


def test_reads_prefixed_environment(monkeypatch):
    """Test that AURAFLOW_ environment variables are read."""
    monkeypatch.setenv("AURAFLOW_DATABASE_URL", "mongodb://db:27017/auraflow")
    monkeypatch.setenv("AURAFLOW_ACCESS_TOKEN_SECRET", "a")
    monkeypatch.setenv("AURAFLOW_REFRESH_TOKEN_SECRET", "r")
    monkeypatch.setenv("AURAFLOW_ACCESS_TOKEN_TTL_MINUTES", "5")

    config = Config()

    assert config.database_url == "mongodb://db:27017/auraflow"
    assert config.access_token_ttl == timedelta(minutes=5)


def test_rejects_shared_secret():
    """Test that equal token secrets are refused."""
    with pytest.raises(ValidationError, match="must differ"):
        Config(**{**BASE, "refresh_token_secret": "access"})


def test_rejects_weak_bcrypt_cost():
    """Test that a bcrypt cost below 10 is refused."""
    with pytest.raises(ValidationError):
        Config(**BASE, bcrypt_rounds=8)


@pytest.mark.parametrize(("debug", "override", "expected"), [(False, None, True), (True, None, False), (True, True, True)])
def test_secure_cookies(debug, override, expected):
    """Test how debug and cookie_secure decide secure cookies."""
    assert Config(**BASE, debug=debug, cookie_secure=override).secure_cookies is expected
