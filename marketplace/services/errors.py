"""Typed failures raised by the auth workflow.

Every failure carries an ``ErrorKind``; the API layer builds its response
envelope from ``kind``, ``message``, ``details`` and ``status_code`` and never
inspects message text.
"""

from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    """Closed set of failure codes exposed in the error envelope."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    WEAK_PASSWORD = "WEAK_PASSWORD"
    MISSING_TOKEN = "MISSING_TOKEN"
    MISSING_PASSWORD = "MISSING_PASSWORD"
    MISSING_EMAIL = "MISSING_EMAIL"
    MISSING_CREDENTIALS = "MISSING_CREDENTIALS"
    EMAIL_EXISTS = "EMAIL_EXISTS"
    USERNAME_EXISTS = "USERNAME_EXISTS"
    INVALID_TOKEN = "INVALID_TOKEN"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    NO_TOKEN = "NO_TOKEN"
    INVALID_SESSION = "INVALID_SESSION"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    DISPATCH_FAILED = "DISPATCH_FAILED"
    RATE_LIMITED = "RATE_LIMITED"
    NOT_FOUND = "NOT_FOUND"
    HTTP_ERROR = "HTTP_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AuthError(Exception):
    """Base class for all workflow failures."""

    kind: ErrorKind = ErrorKind.INTERNAL_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: list[str] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_envelope(self) -> dict:
        """Build the ``{"error": {...}}`` response body."""
        error: dict = {"code": self.kind.value, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}


class ValidationError(AuthError):
    kind = ErrorKind.VALIDATION_ERROR
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid registration data"


class WeakPasswordError(ValidationError):
    kind = ErrorKind.WEAK_PASSWORD
    default_message = "Password does not meet requirements"


class MissingTokenError(AuthError):
    kind = ErrorKind.MISSING_TOKEN
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Token is required"


class MissingPasswordError(AuthError):
    kind = ErrorKind.MISSING_PASSWORD
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "New password is required"


class MissingEmailError(AuthError):
    kind = ErrorKind.MISSING_EMAIL
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Email address is required"


class MissingCredentialsError(AuthError):
    kind = ErrorKind.MISSING_CREDENTIALS
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Email and password are required"


class ConflictError(AuthError):
    """An email or username is already taken."""

    status_code = status.HTTP_409_CONFLICT


class EmailExistsError(ConflictError):
    kind = ErrorKind.EMAIL_EXISTS
    default_message = "An account with this email already exists"


class UsernameExistsError(ConflictError):
    kind = ErrorKind.USERNAME_EXISTS
    default_message = "This username is already taken"


class InvalidOrExpiredTokenError(AuthError):
    kind = ErrorKind.INVALID_TOKEN
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or expired token"


class InvalidCredentialsError(AuthError):
    kind = ErrorKind.AUTHENTICATION_FAILED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password"


class EmailNotVerifiedError(AuthError):
    kind = ErrorKind.EMAIL_NOT_VERIFIED
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Please verify your email before logging in"


class AlreadyVerifiedError(AuthError):
    kind = ErrorKind.ALREADY_VERIFIED
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "This email address is already verified"


class NoAccountFoundError(AuthError):
    """No account matches; callers must answer with their generic success message."""

    kind = ErrorKind.ACCOUNT_NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No account found with this email address"


class MissingSessionError(AuthError):
    kind = ErrorKind.NO_TOKEN
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required. Please provide a valid token."


class InvalidSessionError(AuthError):
    kind = ErrorKind.INVALID_SESSION
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid authentication token."


class SessionExpiredError(InvalidSessionError):
    kind = ErrorKind.SESSION_EXPIRED
    default_message = "Your session has expired. Please log in again."


class ConfigurationError(AuthError):
    """The server is missing required configuration (operator fault)."""

    kind = ErrorKind.CONFIGURATION_ERROR
    default_message = "Server configuration error"


class DispatchError(AuthError):
    """An email could not be handed to the transport. Never shown to clients."""

    kind = ErrorKind.DISPATCH_FAILED
    default_message = "Failed to dispatch email"
