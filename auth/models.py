"""Pydantic models for authentication."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Current time as naive UTC, matching what pymongo returns by default."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OTPRole(str, Enum):
    """Verification roles that must both confirm a registration."""

    USER = "user"
    ADMIN = "admin"


class User(BaseModel):
    """User identity stored in MongoDB."""

    id: str
    name: str
    email: str
    password_hash: str = Field(default="", exclude=True, repr=False)
    phone: Optional[str] = None
    is_verified: bool = False
    is_active: bool = False
    confirmed_roles: list[OTPRole] = Field(default_factory=list)
    verified_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "User":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        return cls(**data)

    def public(self) -> dict[str, Any]:
        """Outward representation. Never includes the password hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "isVerified": self.is_verified,
            "isActive": self.is_active,
            "lastLogin": self.last_login,
            "createdAt": self.created_at,
        }


class OTPToken(BaseModel):
    """One issued passcode."""

    id: str
    token: str
    user_id: str
    email: str
    role: OTPRole
    used: bool = False
    used_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "OTPToken":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        data["user_id"] = str(data["user_id"])
        return cls(**data)


class PasswordResetToken(BaseModel):
    """Stored reset credential. Only the SHA-256 digest of the raw token is kept."""

    id: str
    token_hash: str
    user_id: str
    email: str
    expires_at: datetime
    used: bool = False
    used_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "PasswordResetToken":
        data = dict(doc)
        data["id"] = str(data.pop("_id"))
        data["user_id"] = str(data["user_id"])
        return cls(**data)


class SessionClaims(BaseModel):
    """Verified contents of a session token."""

    user_id: str
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime
