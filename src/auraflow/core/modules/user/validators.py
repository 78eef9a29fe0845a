from auraflow.errors import ValidationError
from auraflow.utils import is_email


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address, rejecting malformed ones.

    Raises:
        ValidationError: If the address is not a plausible email
    """
    normalized = email.strip().lower()
    if not is_email(normalized):
        raise ValidationError("Please enter a valid email address")
    return normalized


def validate_password(password: str) -> None:
    """Validate password meets requirements.

    Requirements:
    - Minimum length of 6 characters
    - No whitespace characters

    Raises:
        ValidationError: If password doesn't meet requirements
    """
    if len(password) < 6:
        raise ValidationError("Password must be at least 6 characters long")

    if any(char.isspace() for char in password):
        raise ValidationError("Password cannot contain whitespace characters")


def validate_name(name: str) -> str:
    name = name.strip()
    if not 1 <= len(name) <= 50:
        raise ValidationError("Name must be between 1 and 50 characters")
    return name
