from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

# Endpoints that need no access token
PUBLIC_ENDPOINTS = {
    ("POST", "/api/v1/auth/register"),
    ("POST", "/api/v1/auth/login"),
    ("POST", "/api/v1/auth/refresh"),
    ("POST", "/api/v1/auth/rotate"),
    ("POST", "/api/v1/auth/logout"),
    ("GET", "/health"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="Aura Flow API",
            version="0.1.0",
            summary="Session and token lifecycle for Aura Flow",
            routes=app.routes,
        )

        # Access token required globally unless an endpoint declares otherwise
        openapi_schema["security"] = [
            {"BearerAuth": []},
            {"AccessTokenCookie": []},
        ]

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in PUBLIC_ENDPOINTS:
                    # Refresh endpoints keep their own RefreshTokenCookie requirement
                    operation.setdefault("security", [])

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid email or password", "type": "authentication_error"},
                {"message": "Session not found", "type": "authentication_error"},
                {"message": "Service temporarily unavailable, please retry.", "type": "service_unavailable"},
            ]
        }
    }


class RateLimitResponse(ErrorResponse):
    """Error response for rejected attempts on rate-limited endpoints."""

    retry_after: int = Field(..., description="Seconds until the next attempt is allowed")
