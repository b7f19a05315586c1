"""Authentication dependencies for FastAPI routes."""

import logging
from typing import Optional

from fastapi import Request

from .errors import Forbidden, StoreUnavailable, Unauthorized, AuthError
from .models import SessionClaims
from .tokens import SessionTokenIssuer

logger = logging.getLogger(__name__)


def extract_token(request: Request) -> Optional[str]:
    """Return the token from the Authorization header, if any."""
    auth_header = request.headers.get("Authorization", "").strip()

    # Support both "Bearer <token>" and raw "<token>" formats
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return auth_header or None


def _issuer(request: Request) -> SessionTokenIssuer:
    issuer = getattr(request.app.state, "token_issuer", None)
    if issuer is None:
        logger.warning("Token issuer not initialized")
        raise StoreUnavailable("Authentication not configured")
    return issuer


async def get_current_user(request: Request) -> Optional[SessionClaims]:
    """
    Optional authentication.
    Returns the verified claims, or None when the token is absent or invalid.
    """
    request.state.user = None
    token = extract_token(request)
    if not token:
        return None

    try:
        claims = _issuer(request).verify(token)
    except AuthError:
        return None

    request.state.user = claims
    return claims


async def require_auth(request: Request) -> SessionClaims:
    """
    Dependency that requires valid authentication.
    Raises 401 when no token is sent and 403 when the token fails verification.
    """
    token = extract_token(request)
    if not token:
        raise Unauthorized()

    try:
        claims = _issuer(request).verify(token)
    except StoreUnavailable:
        raise
    except AuthError:
        raise Forbidden()

    request.state.user = claims
    return claims
