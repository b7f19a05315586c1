"""Authentication routes."""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from auth.credentials import CredentialStore
from auth.email_service import EmailService
from auth.errors import InvalidToken, NotFound, ValidationError
from auth.middleware import require_auth
from auth.models import OTPRole, SessionClaims
from auth.password_reset import PasswordResetManager
from auth.rate_limit import RateLimit
from auth.registration import IssuedPasscodes, RegistrationFlow
from auth.tokens import SessionTokenIssuer
from auth.validators import validate_email
from config.settings import Settings

from .dependencies import (
    get_credentials,
    get_email_service,
    get_password_resets,
    get_registration,
    get_settings,
    get_token_issuer,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists for this email, a password reset link has been sent."
)


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(CamelModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class VerifyOTPRequest(CamelModel):
    """Either or both passcodes may be submitted in one call."""

    user_id: str = Field(alias="userId")
    user_otp: Optional[str] = Field(default=None, alias="userOtp")
    admin_otp: Optional[str] = Field(default=None, alias="adminOtp")


class ResendOTPRequest(CamelModel):
    user_id: str = Field(alias="userId")
    role: Optional[OTPRole] = None


class ForgotPasswordRequest(CamelModel):
    email: str


class ResetPasswordRequest(CamelModel):
    token: str
    password: str = Field(alias="newPassword")


def _queue_passcodes(
    background: BackgroundTasks,
    email_service: EmailService,
    issued: IssuedPasscodes,
    expiry_minutes: int,
) -> None:
    user = issued.user
    senders = {
        OTPRole.USER: email_service.send_user_otp,
        OTPRole.ADMIN: email_service.send_admin_otp,
    }
    for role, code in issued.codes.items():
        background.add_task(senders[role], user.name, user.email, code, expiry_minutes)


@router.post("/register", status_code=201, dependencies=[Depends(RateLimit("auth"))])
async def register(
    request_data: RegisterRequest,
    background: BackgroundTasks,
    registration: RegistrationFlow = Depends(get_registration),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
):
    """Create a pending account and send the user and admin passcodes."""
    issued = await registration.start(
        request_data.name, request_data.email, request_data.password, request_data.phone
    )
    _queue_passcodes(background, email_service, issued, settings.otp_expiry_minutes)

    return {
        "success": True,
        "message": "Registration initiated. Please check your email for OTP verification.",
        "userId": issued.user.id,
        "email": issued.user.email,
    }


@router.post("/login", dependencies=[Depends(RateLimit("auth"))])
async def login(
    request_data: LoginRequest,
    credentials: CredentialStore = Depends(get_credentials),
    issuer: SessionTokenIssuer = Depends(get_token_issuer),
):
    """Check credentials and return a session token."""
    user = await credentials.authenticate(request_data.email, request_data.password)
    token, expires_at = issuer.issue(user)
    logger.info(f"User {user.id} logged in")

    return {
        "success": True,
        "message": "Login successful",
        "user": user.public(),
        "token": token,
        "expiresAt": expires_at,
    }


@router.get("/verify")
async def verify_session(
    claims: SessionClaims = Depends(require_auth),
    credentials: CredentialStore = Depends(get_credentials),
):
    """Confirm the session token and return the current profile."""
    try:
        user = await credentials.get_user(claims.user_id)
    except NotFound:
        raise InvalidToken()

    return {
        "success": True,
        "message": "Token is valid",
        "claims": claims.model_dump(),
        "user": user.public(),
    }


@router.post("/verify-otp", dependencies=[Depends(RateLimit("auth"))])
async def verify_otp(
    request_data: VerifyOTPRequest,
    background: BackgroundTasks,
    registration: RegistrationFlow = Depends(get_registration),
    email_service: EmailService = Depends(get_email_service),
):
    """Validate the user and/or admin passcode of a pending registration."""
    submitted = {}
    if request_data.user_otp:
        submitted[OTPRole.USER] = request_data.user_otp
    if request_data.admin_otp:
        submitted[OTPRole.ADMIN] = request_data.admin_otp
    if not submitted:
        raise ValidationError("userOtp or adminOtp is required")

    result = await registration.confirm(request_data.user_id, submitted)
    if result.activated:
        background.add_task(email_service.send_welcome, result.user.name, result.user.email)
        message = "OTP verification successful"
    else:
        waiting = ", ".join(role.value for role in result.pending)
        message = f"OTP accepted, waiting for {waiting} verification"

    return {
        "success": True,
        "message": message,
        "verified": result.activated,
        "confirmed": [role.value for role in result.confirmed],
        "pending": [role.value for role in result.pending],
    }


@router.post("/resend-otp", dependencies=[Depends(RateLimit("auth"))])
async def resend_otp(
    request_data: ResendOTPRequest,
    background: BackgroundTasks,
    registration: RegistrationFlow = Depends(get_registration),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
):
    """Issue fresh passcodes for a pending registration."""
    issued = await registration.resend(request_data.user_id, request_data.role)
    _queue_passcodes(background, email_service, issued, settings.otp_expiry_minutes)

    return {
        "success": True,
        "message": "A new verification code has been sent.",
        "roles": [role.value for role in issued.codes],
    }


@router.post("/forgot-password", dependencies=[Depends(RateLimit("password_reset"))])
async def forgot_password(
    request_data: ForgotPasswordRequest,
    request: Request,
    background: BackgroundTasks,
    resets: PasswordResetManager = Depends(get_password_resets),
    email_service: EmailService = Depends(get_email_service),
    settings: Settings = Depends(get_settings),
):
    """Send a reset link. The response is the same whether or not the account exists."""
    email = validate_email(request_data.email)
    try:
        raw_token, user = await resets.issue_reset(
            email,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("User-Agent"),
        )
    except NotFound:
        logger.info("Password reset requested for an unknown email")
    else:
        reset_url = (
            f"{settings.app_base_url.rstrip('/')}/reset-password?"
            f"{urlencode({'token': raw_token})}"
        )
        background.add_task(
            email_service.send_password_reset,
            user.name,
            user.email,
            reset_url,
            settings.reset_token_expiry_minutes,
        )

    return {"success": True, "message": FORGOT_PASSWORD_MESSAGE}


@router.post("/reset-password", dependencies=[Depends(RateLimit("password_reset"))])
async def reset_password(
    request_data: ResetPasswordRequest,
    background: BackgroundTasks,
    resets: PasswordResetManager = Depends(get_password_resets),
    email_service: EmailService = Depends(get_email_service),
):
    """Redeem a reset token and set the new password."""
    user = await resets.redeem(request_data.token, request_data.password)
    background.add_task(email_service.send_password_reset_success, user.name, user.email)

    return {"success": True, "message": "Password has been reset successfully"}
