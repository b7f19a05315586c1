"""One-time passcodes for the two-party registration check."""

import logging
import secrets
from datetime import timedelta
from typing import Callable, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from .credentials import to_object_id
from .database import AuthDatabase
from .errors import IdentityMismatch, OTPNotFound, RoleMismatch
from .models import OTPRole, OTPToken, utcnow

logger = logging.getLogger(__name__)


def generate_passcode() -> str:
    """Uniform 6-digit value in [100000, 999999]."""
    return str(100000 + secrets.randbelow(900000))


class OTPManager:
    """Issues, validates and purges passcodes for the ``user`` and ``admin`` roles."""

    OTP_EXPIRY_MINUTES = 10
    MAX_ISSUE_ATTEMPTS = 5

    def __init__(
        self,
        db: AuthDatabase,
        *,
        expiry_minutes: int = OTP_EXPIRY_MINUTES,
        clock: Callable = utcnow,
        generator: Optional[Callable[[], str]] = None,
    ):
        self._db = db
        self._expiry = timedelta(minutes=expiry_minutes)
        self._clock = clock
        self._generate = generator or generate_passcode

    async def issue(self, user_id: str, email: str, role: OTPRole) -> str:
        """Issue a new passcode for (user, role), invalidating any live ones first."""
        oid = to_object_id(user_id)
        now = self._clock()
        await self._db.otp_tokens.update_many(
            {"user_id": oid, "role": role.value, "used": False},
            {"$set": {"used": True, "used_at": now}},
        )

        for _ in range(self.MAX_ISSUE_ATTEMPTS):
            code = self._generate()
            try:
                await self._db.otp_tokens.insert_one({
                    "token": code,
                    "user_id": oid,
                    "email": email,
                    "role": role.value,
                    "used": False,
                    "used_at": None,
                    "expires_at": now + self._expiry,
                    "created_at": now,
                })
            except DuplicateKeyError:
                # Value collides with another live passcode, draw again
                logger.debug("Passcode collision, regenerating")
                continue
            logger.info(f"Issued {role.value} OTP for user {user_id}")
            return code

        raise RuntimeError("Could not allocate a unique passcode")

    async def validate(self, code: str, user_id: str, role: OTPRole) -> OTPToken:
        """Consume a live passcode belonging to (user, role).

        Raises ``OTPNotFound`` when no unconsumed, unexpired passcode has this
        value, ``IdentityMismatch`` or ``RoleMismatch`` when it belongs to
        another user or role. Consumption is a conditional update, so of two
        concurrent attempts only one can succeed.
        """
        now = self._clock()
        doc = await self._db.otp_tokens.find_one(
            {"token": code, "used": False, "expires_at": {"$gt": now}}
        )
        if not doc:
            raise OTPNotFound()
        if str(doc["user_id"]) != str(user_id):
            raise IdentityMismatch()
        if doc["role"] != role.value:
            raise RoleMismatch()

        consumed = await self._db.otp_tokens.find_one_and_update(
            {"_id": doc["_id"], "used": False, "expires_at": {"$gt": now}},
            {"$set": {"used": True, "used_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not consumed:
            raise OTPNotFound()
        logger.info(f"Validated {role.value} OTP for user {user_id}")
        return OTPToken.from_document(consumed)

    async def purge(self) -> int:
        """Delete expired and consumed passcodes. Returns the number removed."""
        result = await self._db.otp_tokens.delete_many({
            "$or": [
                {"expires_at": {"$lt": self._clock()}},
                {"used": True},
            ]
        })
        logger.info(f"Cleaned up {result.deleted_count} expired or used OTPs")
        return result.deleted_count
