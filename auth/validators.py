"""Input policy checks for registration and password changes."""

import re

from .errors import ValidationError

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_SYMBOLS = "@$!%*?&"
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)

PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters long and contain at least one "
    "uppercase letter, one lowercase letter, one number, and one special "
    f"character ({PASSWORD_SYMBOLS})"
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_name(name: str) -> str:
    """Return the trimmed name or raise ``ValidationError``."""
    name = (name or "").strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        raise ValidationError(
            f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
        )
    return name


def validate_email(email: str) -> str:
    """Return the normalized email or raise ``ValidationError``."""
    email = normalize_email(email or "")
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please provide a valid email address")
    return email


def validate_password(password: str) -> str:
    if not password or not PASSWORD_PATTERN.match(password):
        raise ValidationError(PASSWORD_POLICY_MESSAGE)
    return password
