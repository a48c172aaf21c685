"""Field validation for registration and password changes.

Validators return a list of error messages instead of raising, so callers
can report every violation in a single response.
"""

import re

EMAIL_MAX_LENGTH = 255
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 8
# bcrypt only hashes the first 72 bytes
PASSWORD_MAX_LENGTH = 72
LOCATION_MAX_LENGTH = 100

PASSWORD_SYMBOLS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")
SYMBOL_PATTERN = re.compile("[" + re.escape(PASSWORD_SYMBOLS) + "]")


def normalize_email(email: str) -> str:
    """Normalize an email for storage and lookup (case-insensitive)."""
    return email.strip().lower()


def validate_email(email: str | None) -> list[str]:
    """Validate email format and length."""
    if not email or not email.strip():
        return ["Email is required"]

    errors: list[str] = []
    if not EMAIL_PATTERN.match(email.strip()):
        errors.append("Invalid email format")
    if len(email) > EMAIL_MAX_LENGTH:
        errors.append(f"Email is too long (max {EMAIL_MAX_LENGTH} characters)")
    return errors


def validate_username(username: str | None) -> list[str]:
    """Validate username length and character set."""
    if not username or not username.strip():
        return ["Username is required"]

    errors: list[str] = []
    if len(username) < USERNAME_MIN_LENGTH:
        errors.append(f"Username must be at least {USERNAME_MIN_LENGTH} characters")
    if len(username) > USERNAME_MAX_LENGTH:
        errors.append(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
    if not USERNAME_PATTERN.match(username):
        errors.append("Username can only contain letters, numbers, and underscores")
    return errors


def validate_password(password: str | None) -> list[str]:
    """Validate password strength, reporting every rule that fails."""
    if not password:
        return ["Password is required"]

    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password must be at most {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
    if not SYMBOL_PATTERN.search(password):
        errors.append("Password must contain at least one special character")
    return errors


def validate_location(location: str | None) -> list[str]:
    """Validate the optional free-text location."""
    if location is None or not location.strip():
        return []
    if len(location) > LOCATION_MAX_LENGTH:
        return [f"Location must be at most {LOCATION_MAX_LENGTH} characters"]
    return []


def validate_registration(
    email: str | None,
    username: str | None,
    password: str | None,
    location: str | None = None,
) -> list[str]:
    """Validate all registration fields and collect every error."""
    return [
        *validate_email(email),
        *validate_username(username),
        *validate_password(password),
        *validate_location(location),
    ]
