from datetime import timedelta
from typing import Literal, Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str
    host: str = "127.0.0.1"
    port: int = 3001
    debug: bool = False
    cors_origins: list[str] = []
    # Token signing, one secret per token type
    access_token_secret: str
    refresh_token_secret: str
    access_token_ttl_minutes: int = Field(default=15, gt=0)
    refresh_token_ttl_days: int = Field(default=7, gt=0)
    token_issuer: str = "aura-flow"
    token_audience: str = "aura-flow-client"
    token_leeway_seconds: float = Field(default=0, ge=0)  # Clock-skew tolerance when checking exp
    bcrypt_rounds: int = Field(default=12, ge=10, le=31)
    session_purge_interval_seconds: float = Field(default=3600, gt=0)
    # Attempts per client address on login and registration, in a sliding window
    rate_limit_enabled: bool = True
    login_attempts_limit: int = Field(default=5, gt=0)
    login_attempts_window_minutes: int = Field(default=15, gt=0)
    register_attempts_limit: int = Field(default=3, gt=0)
    register_attempts_window_minutes: int = Field(default=60, gt=0)
    # Cookie transport
    cookie_secure: bool | None = None  # None means secure unless running in debug mode
    cookie_samesite: Literal["strict", "lax", "none"] = "strict"
    cookie_path: str = "/"
    cookie_domain: str | None = None

    model_config = {
        "env_file": [".env"],
        "env_prefix": "AURAFLOW_",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def check_distinct_secrets(self) -> Self:
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("access_token_secret and refresh_token_secret must differ")
        return self

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self.access_token_ttl_minutes)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self.refresh_token_ttl_days)

    @property
    def token_leeway(self) -> timedelta:
        return timedelta(seconds=self.token_leeway_seconds)

    @property
    def secure_cookies(self) -> bool:
        if self.cookie_secure is None:
            return not self.debug
        return self.cookie_secure
