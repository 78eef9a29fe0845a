from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails.

    The client is expected to re-authenticate; auth cookies are cleared on the response.
    """

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    """Raised when email/password verification fails."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class InvalidRefreshTokenError(AuthenticationError):
    """Raised when a refresh token fails signature or expiry checks."""

    def __init__(self, message: str = "Invalid refresh token") -> None:
        super().__init__(message)


class SessionNotFoundError(AuthenticationError):
    """Raised when a well-formed refresh token has no live session (revoked, rotated or unknown)."""

    def __init__(self, message: str = "Session not found") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class ConflictError(UserError):
    """Raised when a resource with the same unique key already exists."""


class RateLimitedError(UserError):
    """Raised when a client makes too many attempts on a rate-limited endpoint."""

    def __init__(self, retry_after: int, message: str = "Too many attempts, please retry later") -> None:
        super().__init__(message)
        self.retry_after = retry_after


class TokenError(Exception):
    """Base class for token verification failures. Never shown to the user."""


class InvalidSignatureError(TokenError):
    """Token is malformed, tampered with, or was not issued by us."""


class TokenExpiredError(TokenError):
    """Token signature is valid but its expiry has passed."""


class WrongTokenTypeError(TokenError):
    """Token is valid but of a different type than expected."""


class PersistenceError(Exception):
    """Raised when the session or user storage fails. Clients should retry later."""
