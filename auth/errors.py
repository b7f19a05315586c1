"""Error taxonomy for the credential core.

Every failure a handler can see is one of the classes below. Each carries an
HTTP status, a stable machine-readable ``error_type`` and a human message, so
the API layer can turn any of them into a response without inspecting them
further.
"""

from typing import Any, Optional


class AuthError(Exception):
    """Base class for all credential-core errors."""

    status_code: int = 400
    error_type: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.error_type,
            "message": self.message,
        }


class ValidationError(AuthError):
    """Malformed input or a policy violation."""

    status_code = 400
    error_type = "validation_error"
    default_message = "Invalid input"


class ConflictError(AuthError):
    """An identity with this email already exists."""

    status_code = 400
    error_type = "conflict"
    default_message = "User with this email already exists"


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. The message is the same for both."""

    status_code = 401
    error_type = "invalid_credentials"
    default_message = "Invalid email or password"


class AccountNotVerified(AuthError):
    status_code = 403
    error_type = "account_not_verified"
    default_message = "Account has not been verified yet"


class InvalidToken(AuthError):
    """Session token with a bad signature, bad structure or past expiry."""

    status_code = 401
    error_type = "invalid_token"
    default_message = "Invalid or expired token"


class InvalidOrExpiredToken(AuthError):
    """Password-reset token that is unknown, used or expired."""

    status_code = 400
    error_type = "invalid_or_expired_token"
    default_message = "Invalid or expired reset token"


class NotFound(AuthError):
    status_code = 404
    error_type = "not_found"
    default_message = "Not found"


class OTPNotFound(NotFound):
    """No live passcode with the submitted value."""

    status_code = 400
    error_type = "otp_not_found"
    default_message = "Invalid or expired OTP"


class IdentityMismatch(AuthError):
    status_code = 400
    error_type = "otp_identity_mismatch"
    default_message = "OTP does not match user"


class RoleMismatch(AuthError):
    status_code = 400
    error_type = "otp_role_mismatch"
    default_message = "Invalid OTP type"


class AlreadyVerified(AuthError):
    status_code = 400
    error_type = "already_verified"
    default_message = "Account is already verified"


class RateLimited(AuthError):
    status_code = 429
    error_type = "rate_limited"
    default_message = "Too many requests, please try again later."

    def __init__(self, message: Optional[str] = None, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after


class Unauthorized(AuthError):
    """No session token was presented."""

    status_code = 401
    error_type = "unauthorized"
    default_message = "Access token required"


class Forbidden(AuthError):
    """A session token was presented but failed verification."""

    status_code = 403
    error_type = "forbidden"
    default_message = "Invalid or expired token"


class StoreUnavailable(AuthError):
    status_code = 500
    error_type = "store_unavailable"
    default_message = "Service temporarily unavailable"
