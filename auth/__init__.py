"""Credential and verification core."""

from .models import User, OTPRole, OTPToken, PasswordResetToken, SessionClaims
from .database import AuthDatabase
from .credentials import CredentialStore
from .otp import OTPManager
from .registration import RegistrationFlow
from .password_reset import PasswordResetManager
from .tokens import SessionTokenIssuer
from .rate_limit import SlidingWindowLimiter, RateLimit
from .cleanup import CleanupScheduler
from .email_service import EmailService
from .middleware import require_auth, get_current_user

__all__ = [
    "User",
    "OTPRole",
    "OTPToken",
    "PasswordResetToken",
    "SessionClaims",
    "AuthDatabase",
    "CredentialStore",
    "OTPManager",
    "RegistrationFlow",
    "PasswordResetManager",
    "SessionTokenIssuer",
    "SlidingWindowLimiter",
    "RateLimit",
    "CleanupScheduler",
    "EmailService",
    "require_auth",
    "get_current_user",
]
