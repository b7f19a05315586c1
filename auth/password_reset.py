"""Single-use password reset tokens."""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Callable, Optional

from pymongo import ReturnDocument

from .credentials import CredentialStore, to_object_id
from .database import AuthDatabase
from .errors import InvalidOrExpiredToken, NotFound
from .models import PasswordResetToken, User, utcnow
from .validators import normalize_email, validate_password

logger = logging.getLogger(__name__)


def digest_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class PasswordResetManager:
    """Issues and redeems reset tokens. Only token digests are persisted."""

    RESET_TOKEN_EXPIRY_MINUTES = 60
    RETENTION_HOURS = 24
    TOKEN_BYTES = 32

    def __init__(
        self,
        db: AuthDatabase,
        credentials: CredentialStore,
        *,
        expiry_minutes: int = RESET_TOKEN_EXPIRY_MINUTES,
        retention_hours: int = RETENTION_HOURS,
        clock: Callable = utcnow,
    ):
        self._db = db
        self._credentials = credentials
        self._expiry = timedelta(minutes=expiry_minutes)
        self._retention = timedelta(hours=retention_hours)
        self._clock = clock

    async def issue_reset(
        self,
        email: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[str, User]:
        """Mint a reset token for the account behind ``email``.

        Returns the raw token (for out-of-band delivery, never stored) and the
        user it belongs to. Raises ``NotFound`` for an unknown email.
        """
        user = await self._credentials.get_user_by_email(normalize_email(email or ""))
        if not user:
            raise NotFound("No user found with this email address")

        now = self._clock()
        oid = to_object_id(user.id)
        await self._db.password_reset_tokens.update_many(
            {"user_id": oid, "used": False},
            {"$set": {"used": True, "used_at": now}},
        )

        raw_token = secrets.token_hex(self.TOKEN_BYTES)
        await self._db.password_reset_tokens.insert_one({
            "token_hash": digest_token(raw_token),
            "user_id": oid,
            "email": user.email,
            "expires_at": now + self._expiry,
            "used": False,
            "used_at": None,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "created_at": now,
        })
        logger.info(f"Issued password reset token for user {user.id}")
        return raw_token, user

    async def redeem(self, raw_token: str, new_password: str) -> User:
        """Rotate the password behind a valid token and burn the token.

        Raises ``InvalidOrExpiredToken`` for unknown, used or expired tokens
        (checked before the password policy) and ``ValidationError`` if the new
        password fails the policy, in which case the token stays usable.
        """
        token_hash = digest_token(raw_token or "")
        now = self._clock()
        live = {"token_hash": token_hash, "used": False, "expires_at": {"$gt": now}}

        doc = await self._db.password_reset_tokens.find_one(live)
        if not doc:
            raise InvalidOrExpiredToken()

        validate_password(new_password)

        consumed = await self._db.password_reset_tokens.find_one_and_update(
            live,
            {"$set": {"used": True, "used_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not consumed:
            raise InvalidOrExpiredToken()

        token = PasswordResetToken.from_document(consumed)
        await self._credentials.rotate_password(token.user_id, new_password)
        logger.info(f"Password reset completed for user {token.user_id}")
        return await self._credentials.get_user(token.user_id)

    async def purge(self) -> int:
        """Delete expired tokens and tokens used more than the retention window ago."""
        now = self._clock()
        result = await self._db.password_reset_tokens.delete_many({
            "$or": [
                {"expires_at": {"$lt": now}},
                {"used": True, "used_at": {"$lt": now - self._retention}},
            ]
        })
        logger.info(f"Cleaned up {result.deleted_count} expired password reset tokens")
        return result.deleted_count
