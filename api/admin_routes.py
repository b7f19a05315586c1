"""Admin API routes for user management."""

import secrets

from fastapi import APIRouter, Depends, HTTPException, Request

from auth.credentials import CredentialStore
from auth.errors import NotFound, Unauthorized
from auth.rate_limit import RateLimit

from .dependencies import get_credentials, get_settings

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(RateLimit("api"))]
)


def verify_admin(request: Request) -> bool:
    """Simple admin auth via the X-Admin-Key header."""
    expected = get_settings(request).admin_api_key
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API not configured")

    supplied = request.headers.get("X-Admin-Key", "")
    if not secrets.compare_digest(supplied.encode(), expected.encode()):
        raise Unauthorized("Invalid admin key")
    return True


@router.get("/users", dependencies=[Depends(verify_admin)])
async def list_users(credentials: CredentialStore = Depends(get_credentials)):
    """List all users. Password hashes are never included."""
    users = await credentials.list_users()
    return {"success": True, "users": [u.public() for u in users]}


@router.get("/users/{email}", dependencies=[Depends(verify_admin)])
async def get_user(email: str, credentials: CredentialStore = Depends(get_credentials)):
    user = await credentials.get_user_by_email(email)
    if not user:
        raise NotFound("User not found")
    data = user.public()
    data["verifiedAt"] = user.verified_at
    data["confirmedRoles"] = [role.value for role in user.confirmed_roles]
    return {"success": True, "user": data}


@router.get("/stats", dependencies=[Depends(verify_admin)])
async def get_stats(credentials: CredentialStore = Depends(get_credentials)):
    """User statistics for the admin dashboard."""
    return {"success": True, "stats": await credentials.get_stats()}
