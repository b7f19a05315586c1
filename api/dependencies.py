"""Dependency injection for FastAPI.

Components are constructed once at startup and stored on ``app.state``;
these accessors hand them to route handlers.
"""

from fastapi import Request

from auth.credentials import CredentialStore
from auth.email_service import EmailService
from auth.errors import StoreUnavailable
from auth.password_reset import PasswordResetManager
from auth.registration import RegistrationFlow
from auth.tokens import SessionTokenIssuer
from config.settings import Settings


def _component(request: Request, name: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise StoreUnavailable("Authentication not configured")
    return component


def get_settings(request: Request) -> Settings:
    return _component(request, "settings")


def get_credentials(request: Request) -> CredentialStore:
    return _component(request, "credentials")


def get_registration(request: Request) -> RegistrationFlow:
    return _component(request, "registration")


def get_password_resets(request: Request) -> PasswordResetManager:
    return _component(request, "password_resets")


def get_token_issuer(request: Request) -> SessionTokenIssuer:
    return _component(request, "token_issuer")


def get_email_service(request: Request) -> EmailService:
    return _component(request, "email_service")
